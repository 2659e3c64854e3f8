"""Slug に関するドメインサービスおよび値オブジェクト。"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable

from features.wiki.domain.exceptions import WikiValidationError

FALLBACK_SLUG = "page"
MAX_SLUG_LENGTH = 255


@dataclass(frozen=True)
class Slug:
    """プロジェクト内でページを識別するスラッグの値オブジェクト。"""

    value: str

    def __post_init__(self) -> None:
        normalized = (self.value or "").strip()
        if not normalized:
            raise WikiValidationError("slug value must not be empty")
        object.__setattr__(self, "value", normalized[:MAX_SLUG_LENGTH])

    def with_suffix(self, counter: int) -> "Slug":
        suffix = f"-{counter}"
        return Slug(self.value[: MAX_SLUG_LENGTH - len(suffix)] + suffix)

    def __str__(self) -> str:  # pragma: no cover - dataclass repr helper
        return self.value


class SlugNormalizer:
    """タイトルからスラッグ文字列を生成する正規化コンポーネント。"""

    _INVALID_PATTERN = re.compile(r"[^\w\s-]", re.UNICODE)
    _HYPHEN_PATTERN = re.compile(r"[-\s_]+")

    def normalize(self, text: str) -> str:
        if not text:
            return ""

        normalized = unicodedata.normalize("NFKC", text)
        normalized = normalized.lower()
        normalized = self._INVALID_PATTERN.sub("", normalized)
        normalized = self._HYPHEN_PATTERN.sub("-", normalized)
        return normalized.strip("-")


class SlugService:
    """タイトルからの導出とプロジェクト内での一意化を担うドメインサービス。"""

    def __init__(self, normalizer: SlugNormalizer | None = None) -> None:
        self._normalizer = normalizer or SlugNormalizer()

    def generate_from_title(self, title: str) -> Slug:
        """タイトルからスラッグを生成する。記号のみのタイトルは既定値になる。"""

        normalized = self._normalizer.normalize(title)
        return Slug(normalized or FALLBACK_SLUG)

    def ensure_unique(self, slug: Slug, exists: Callable[[str], bool]) -> Slug:
        """既存スラッグと重複しないように連番を付与する。"""

        if not exists(slug.value):
            return slug

        counter = 1
        while True:
            candidate = slug.with_suffix(counter)
            if not exists(candidate.value):
                return candidate
            counter += 1

    def generate_unique_from_title(self, title: str, exists: Callable[[str], bool]) -> Slug:
        return self.ensure_unique(self.generate_from_title(title), exists)


__all__ = ["FALLBACK_SLUG", "Slug", "SlugNormalizer", "SlugService"]
