"""Wiki API のリクエスト・レスポンススキーマ（JSONはcamelCase）"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from core.time import isoformat_or_none
from features.wiki.domain.entities import (
    MergeOutcome,
    WikiChangeStatus,
    WikiChangeType,
    WikiPageStatus,
    WorkItemType,
)


class UTCDateTime(fields.DateTime):
    """UTCの ISO 8601（末尾 ``Z``）で出力する日時フィールド"""

    def _serialize(self, value, attr, obj, **kwargs):
        return isoformat_or_none(value)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class PaginationQuerySchema(Schema):
    page = fields.Integer(load_default=None, validate=validate.Range(min=1))
    page_size = fields.Integer(
        data_key="pageSize", load_default=None, validate=validate.Range(min=1)
    )


class WikiPageListQuerySchema(PaginationQuerySchema):
    status = fields.String(load_default=None, validate=validate.OneOf(WikiPageStatus.values()))


class WikiChangeListQuerySchema(PaginationQuerySchema):
    status = fields.String(load_default=None, validate=validate.OneOf(WikiChangeStatus.values()))


class WikiPageCreateSchema(Schema):
    title = fields.String(required=True, metadata={"description": "ページタイトル"})
    content = fields.String(load_default="", metadata={"description": "本文（HTML）"})
    parent_id = fields.Integer(data_key="parentId", load_default=None, allow_none=True)
    sort_order = fields.Integer(data_key="sortOrder", load_default=0)


class WikiPageUpdateSchema(Schema):
    title = fields.String(required=True)
    parent_id = fields.Integer(data_key="parentId", load_default=None, allow_none=True)
    sort_order = fields.Integer(data_key="sortOrder", load_default=0)


class WikiContentEditSchema(Schema):
    content = fields.String(required=True)
    base_hash = fields.String(
        data_key="baseHash",
        load_default=None,
        allow_none=True,
        metadata={"description": "編集開始時に取得した contentHash"},
    )


class WikiPageStatusSchema(Schema):
    status = fields.String(required=True, validate=validate.OneOf(WikiPageStatus.values()))


class WikiChangeCreateSchema(Schema):
    item_type = fields.String(
        data_key="itemType", required=True, validate=validate.OneOf(WorkItemType.values())
    )
    item_id = fields.Integer(data_key="itemId", required=True, validate=validate.Range(min=1))
    content = fields.String(required=True, metadata={"description": "提案後の本文全体"})
    change_type = fields.String(
        data_key="changeType",
        load_default=None,
        validate=validate.OneOf(WikiChangeType.values()),
    )


class WikiChangeContentSchema(Schema):
    content = fields.String(required=True)


class WikiItemQuerySchema(Schema):
    item_type = fields.String(
        data_key="itemType", required=True, validate=validate.OneOf(WorkItemType.values())
    )
    item_id = fields.Integer(data_key="itemId", required=True, validate=validate.Range(min=1))


class WikiItemMergeSchema(WikiItemQuerySchema):
    pass


class WikiChangeRejectSchema(Schema):
    reason = fields.String(load_default=None, allow_none=True)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class WikiPageSchema(Schema):
    id = fields.Integer()
    project_id = fields.Integer(data_key="projectId")
    slug = fields.String()
    title = fields.String()
    content = fields.String()
    content_hash = fields.String(data_key="contentHash")
    version = fields.Integer()
    status = fields.String()
    parent_id = fields.Integer(data_key="parentId", allow_none=True)
    sort_order = fields.Integer(data_key="sortOrder")
    created_by_id = fields.Integer(data_key="createdBy")
    updated_by_id = fields.Integer(data_key="updatedBy")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")


class WikiPageListSchema(Schema):
    items = fields.List(fields.Nested(WikiPageSchema), data_key="wikiPages")
    total = fields.Integer()
    page = fields.Integer()
    page_size = fields.Integer(data_key="pageSize")


class WikiPageTreeSchema(Schema):
    wiki_pages = fields.List(fields.Dict(), data_key="wikiPages")


class WikiChangeSchema(Schema):
    id = fields.Integer()
    wiki_page_id = fields.Integer(data_key="wikiPageId")
    project_id = fields.Integer(data_key="projectId")
    item_type = fields.String(data_key="itemType")
    item_id = fields.Integer(data_key="itemId")
    base_hash = fields.String(data_key="baseHash")
    delta = fields.String(allow_none=True)
    snapshot = fields.String()
    snapshot_hash = fields.String(data_key="snapshotHash")
    change_type = fields.String(data_key="changeType")
    status = fields.String()
    merged_at = UTCDateTime(data_key="mergedAt", allow_none=True)
    created_by_id = fields.Integer(data_key="createdBy")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")


class WikiChangeListSchema(Schema):
    items = fields.List(fields.Nested(WikiChangeSchema), data_key="changes")
    total = fields.Integer()
    page = fields.Integer()
    page_size = fields.Integer(data_key="pageSize")


class MergeResultSchema(Schema):
    outcome = fields.String(validate=validate.OneOf(MergeOutcome.values()))
    change = fields.Nested(WikiChangeSchema)
    page = fields.Nested(WikiPageSchema, allow_none=True)
    current_hash = fields.String(data_key="currentHash", allow_none=True)


class WikiItemMergeResultSchema(Schema):
    results = fields.List(fields.Nested(MergeResultSchema))
    merged = fields.Integer()
    conflicted = fields.Integer()


class MergePreviewSchema(Schema):
    change = fields.Nested(WikiChangeSchema)
    content = fields.String()
    current_content = fields.String(data_key="currentContent")
    current_hash = fields.String(data_key="currentHash")
    would_conflict = fields.Boolean(data_key="wouldConflict")
