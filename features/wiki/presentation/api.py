"""Wiki ページ・変更提案の REST API"""

from __future__ import annotations

from functools import wraps

from flask_smorest import abort

from features.wiki.application.dto import (
    WikiChangeProposalInput,
    WikiChangeResolutionInput,
    WikiContentEditInput,
    WikiItemCompletionInput,
    WikiPageCreateInput,
    WikiPageMetadataInput,
    WikiPageStatusInput,
)
from features.wiki.application.merge import WikiConflictResolver, WikiMergeEngine
from features.wiki.application.services import WikiChangeService, WikiPageService
from features.wiki.application.use_cases import (
    WikiChangeProposalUseCase,
    WikiChangeResolutionUseCase,
    WikiItemCompletionUseCase,
    WikiPageContentEditUseCase,
    WikiPageCreationUseCase,
    WikiPageMetadataUpdateUseCase,
    WikiPageStatusUpdateUseCase,
)
from features.wiki.domain.exceptions import (
    WikiAccessDeniedError,
    WikiChangeNotFoundError,
    WikiError,
    WikiInvalidStateTransitionError,
    WikiPageNotFoundError,
    WikiStaleContentError,
)
from webapp.auth import actor_required, current_actor_id

from . import bp
from .schemas import (
    MergePreviewSchema,
    MergeResultSchema,
    WikiChangeContentSchema,
    WikiChangeCreateSchema,
    WikiChangeListQuerySchema,
    WikiChangeListSchema,
    WikiChangeRejectSchema,
    WikiChangeSchema,
    WikiContentEditSchema,
    WikiItemMergeResultSchema,
    WikiItemMergeSchema,
    WikiItemQuerySchema,
    WikiPageCreateSchema,
    WikiPageListQuerySchema,
    WikiPageListSchema,
    WikiPageSchema,
    WikiPageStatusSchema,
    WikiPageTreeSchema,
    WikiPageUpdateSchema,
)


def _abort_for(exc: WikiError):
    if isinstance(exc, (WikiPageNotFoundError, WikiChangeNotFoundError)):
        abort(404, message=str(exc))
    if isinstance(exc, WikiAccessDeniedError):
        abort(403, message=str(exc))
    if isinstance(exc, WikiStaleContentError):
        abort(
            409,
            message="ページは他の利用者によって更新されています",
            details={"currentHash": exc.current_hash, "expectedHash": exc.expected_hash},
        )
    if isinstance(exc, WikiInvalidStateTransitionError):
        abort(409, message=str(exc), details={"status": exc.current})
    # WikiValidationError, WikiOperationError
    abort(400, message=str(exc))


def translate_wiki_errors(func):
    """ドメイン例外を HTTP エラーへ変換する"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except WikiError as exc:
            _abort_for(exc)

    return wrapper


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------
@bp.route("/projects/<int:project_id>/wiki", methods=["POST"])
@bp.arguments(WikiPageCreateSchema)
@bp.response(201, WikiPageSchema)
@actor_required
@translate_wiki_errors
def create_page(payload, project_id):
    """Wikiページ作成"""
    return WikiPageCreationUseCase().execute(
        WikiPageCreateInput(
            project_id=project_id,
            title=payload["title"],
            content=payload["content"],
            parent_id=payload["parent_id"],
            sort_order=payload["sort_order"],
            author_id=current_actor_id(),
        )
    )


@bp.route("/projects/<int:project_id>/wiki", methods=["GET"])
@bp.arguments(WikiPageListQuerySchema, location="query")
@bp.response(200, WikiPageListSchema)
@actor_required
@translate_wiki_errors
def list_pages(query, project_id):
    """プロジェクトのページ一覧（更新日時の新しい順）"""
    return WikiPageService().list_pages(
        project_id,
        page=query["page"],
        page_size=query["page_size"],
        status=query["status"],
    )


@bp.route("/projects/<int:project_id>/wiki/tree", methods=["GET"])
@bp.response(200, WikiPageTreeSchema)
@actor_required
def get_page_tree(project_id):
    tree = WikiPageService().get_page_tree(project_id)
    return {"wiki_pages": [node.to_dict() for node in tree]}


@bp.route("/projects/<int:project_id>/wiki/slug/<slug>", methods=["GET"])
@bp.response(200, WikiPageSchema)
@actor_required
@translate_wiki_errors
def get_page_by_slug(project_id, slug):
    return WikiPageService().get_page_by_slug(project_id, slug)


@bp.route("/wiki/<int:page_id>", methods=["GET"])
@bp.response(200, WikiPageSchema)
@actor_required
@translate_wiki_errors
def get_page(page_id):
    return WikiPageService().get_page(page_id)


@bp.route("/wiki/<int:page_id>", methods=["PUT"])
@bp.arguments(WikiPageUpdateSchema)
@bp.response(200, WikiPageSchema)
@actor_required
@translate_wiki_errors
def update_page(payload, page_id):
    """タイトル・親ページ・並び順の更新（本文は変更しない）"""
    return WikiPageMetadataUpdateUseCase().execute(
        WikiPageMetadataInput(
            page_id=page_id,
            title=payload["title"],
            parent_id=payload["parent_id"],
            sort_order=payload["sort_order"],
            editor_id=current_actor_id(),
        )
    )


@bp.route("/wiki/<int:page_id>/content", methods=["PUT"])
@bp.arguments(WikiContentEditSchema)
@bp.response(200, WikiPageSchema)
@actor_required
@translate_wiki_errors
def edit_page_content(payload, page_id):
    """本文の直接編集

    ``baseHash`` を指定すると、他の書き込みと競合した場合は 409 を返す。
    """
    return WikiPageContentEditUseCase().execute(
        WikiContentEditInput(
            page_id=page_id,
            content=payload["content"],
            base_hash=payload["base_hash"],
            editor_id=current_actor_id(),
        )
    )


@bp.route("/wiki/<int:page_id>/status", methods=["PUT"])
@bp.arguments(WikiPageStatusSchema)
@bp.response(200, WikiPageSchema)
@actor_required
@translate_wiki_errors
def update_page_status(payload, page_id):
    return WikiPageStatusUpdateUseCase().execute(
        WikiPageStatusInput(page_id=page_id, status=payload["status"], editor_id=current_actor_id())
    )


@bp.route("/wiki/<int:page_id>", methods=["DELETE"])
@bp.response(204)
@actor_required
@translate_wiki_errors
def delete_page(page_id):
    WikiPageService().delete_page(page_id, current_actor_id())


# ---------------------------------------------------------------------------
# Change proposals
# ---------------------------------------------------------------------------
@bp.route("/wiki/<int:page_id>/changes", methods=["POST"])
@bp.arguments(WikiChangeCreateSchema)
@bp.response(201, WikiChangeSchema)
@actor_required
@translate_wiki_errors
def create_change(payload, page_id):
    """作業項目に紐づく変更提案を作成"""
    return WikiChangeProposalUseCase().execute(
        WikiChangeProposalInput(
            page_id=page_id,
            item_type=payload["item_type"],
            item_id=payload["item_id"],
            content=payload["content"],
            change_type=payload["change_type"],
            author_id=current_actor_id(),
        )
    )


@bp.route("/wiki/<int:page_id>/changes", methods=["GET"])
@bp.arguments(WikiChangeListQuerySchema, location="query")
@bp.response(200, WikiChangeListSchema)
@actor_required
@translate_wiki_errors
def list_page_changes(query, page_id):
    return WikiChangeService().list_by_page(
        page_id,
        page=query["page"],
        page_size=query["page_size"],
        status=query["status"],
    )


@bp.route("/wiki/<int:page_id>/changes/pending", methods=["GET"])
@bp.response(200, WikiChangeSchema(many=True))
@actor_required
@translate_wiki_errors
def list_pending_changes(page_id):
    return WikiChangeService().list_pending_for_page(page_id)


@bp.route("/wiki-changes", methods=["GET"])
@bp.arguments(WikiItemQuerySchema, location="query")
@bp.response(200, WikiChangeSchema(many=True))
@actor_required
@translate_wiki_errors
def list_item_changes(query):
    return WikiChangeService().list_by_item(query["item_type"], query["item_id"])


@bp.route("/wiki-changes/merge", methods=["POST"])
@bp.arguments(WikiItemMergeSchema)
@bp.response(200, WikiItemMergeResultSchema)
@actor_required
@translate_wiki_errors
def merge_item_changes(payload):
    """作業項目の完了時に保留中の提案をまとめてマージ"""
    summary = WikiItemCompletionUseCase().execute(
        WikiItemCompletionInput(
            item_type=payload["item_type"],
            item_id=payload["item_id"],
            actor_id=current_actor_id(),
        )
    )
    return {
        "results": summary.results,
        "merged": len(summary.merged),
        "conflicted": len(summary.conflicted),
    }


@bp.route("/wiki-changes/<int:change_id>", methods=["GET"])
@bp.response(200, WikiChangeSchema)
@actor_required
@translate_wiki_errors
def get_change(change_id):
    return WikiChangeService().get(change_id)


@bp.route("/wiki-changes/<int:change_id>", methods=["PUT"])
@bp.arguments(WikiChangeContentSchema)
@bp.response(200, WikiChangeSchema)
@actor_required
@translate_wiki_errors
def update_change(payload, change_id):
    """保留中の提案内容を作成者が差し替える"""
    return WikiChangeService().update_snapshot(change_id, payload["content"], current_actor_id())


@bp.route("/wiki-changes/<int:change_id>", methods=["DELETE"])
@bp.response(204)
@actor_required
@translate_wiki_errors
def delete_change(change_id):
    WikiChangeService().delete(change_id, current_actor_id())


@bp.route("/wiki-changes/<int:change_id>/merge", methods=["POST"])
@bp.response(200, MergeResultSchema)
@actor_required
@translate_wiki_errors
def merge_change(change_id):
    """提案を1件マージする。競合時もエラーではなく ``outcome=conflict`` を返す。"""
    return WikiMergeEngine().merge(change_id, current_actor_id())


@bp.route("/wiki-changes/<int:change_id>/preview", methods=["GET"])
@bp.response(200, MergePreviewSchema)
@actor_required
@translate_wiki_errors
def preview_change(change_id):
    return WikiMergeEngine().preview_merge(change_id)


@bp.route("/wiki-changes/<int:change_id>/resolve", methods=["POST"])
@bp.arguments(WikiChangeContentSchema)
@bp.response(200, MergeResultSchema)
@actor_required
@translate_wiki_errors
def resolve_change(payload, change_id):
    """競合した提案を手動で統合した内容で解決"""
    return WikiChangeResolutionUseCase().execute(
        WikiChangeResolutionInput(
            change_id=change_id,
            content=payload["content"],
            editor_id=current_actor_id(),
        )
    )


@bp.route("/wiki-changes/<int:change_id>/reject", methods=["POST"])
@bp.arguments(WikiChangeRejectSchema, required=False)
@bp.response(200, WikiChangeSchema)
@actor_required
@translate_wiki_errors
def reject_change(payload, change_id):
    """提案を却下する。本文 ``{"reason": ...}`` は任意"""
    return WikiConflictResolver().reject(change_id, current_actor_id(), reason=payload.get("reason"))
