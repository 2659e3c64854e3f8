# -*- coding: utf-8 -*-
"""
共通ページング機能

ページ一覧・変更履歴のオフセットベースページングで利用する。
"""

from __future__ import annotations

from typing import Optional

from core.settings import settings


class PaginationParams:
    """ページングパラメータを管理するクラス"""

    def __init__(self, page: Optional[int] = None, page_size: Optional[int] = None):
        default_size = settings.wiki_default_page_size
        max_size = settings.wiki_max_page_size

        self.page = page if page and page > 0 else 1
        if page_size is None:
            page_size = default_size
        self.page_size = min(max(page_size, 1), max_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<PaginationParams page={self.page} size={self.page_size}>"


__all__ = ["PaginationParams"]
