"""外部の作業項目（機能・課題）を解決するアダプタ"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from flask import current_app, has_app_context

from features.wiki.domain.entities import WorkItemRef, WorkItemResolver, WorkItemType

WORK_ITEM_RESOLVER_EXTENSION = "wiki_work_item_resolver"


class PermissiveWorkItemResolver:
    """作業項目サービスと未連携の環境向けの既定実装。

    種別とIDが妥当であれば存在するものとみなし、所属プロジェクトは検証しない。
    """

    def resolve_item(self, item_type: WorkItemType, item_id: int) -> Optional[WorkItemRef]:
        return WorkItemRef(item_type=item_type, item_id=item_id, project_id=None)


class InMemoryWorkItemResolver:
    """登録済みの作業項目のみを解決する実装（テスト・シード用）"""

    def __init__(self) -> None:
        self._items: Dict[Tuple[WorkItemType, int], WorkItemRef] = {}

    def register(self, item_type: WorkItemType | str, item_id: int, project_id: int | None) -> WorkItemRef:
        ref = WorkItemRef(item_type=WorkItemType.parse(item_type), item_id=item_id, project_id=project_id)
        self._items[(ref.item_type, ref.item_id)] = ref
        return ref

    def resolve_item(self, item_type: WorkItemType, item_id: int) -> Optional[WorkItemRef]:
        return self._items.get((WorkItemType.parse(item_type), item_id))


def get_work_item_resolver() -> WorkItemResolver:
    """アプリケーションに登録されたリゾルバを返す。"""

    if has_app_context():
        resolver = current_app.extensions.get(WORK_ITEM_RESOLVER_EXTENSION)
        if resolver is not None:
            return resolver
    return PermissiveWorkItemResolver()


__all__ = [
    "InMemoryWorkItemResolver",
    "PermissiveWorkItemResolver",
    "WORK_ITEM_RESOLVER_EXTENSION",
    "get_work_item_resolver",
]
