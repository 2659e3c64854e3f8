# webapp/__init__.py
import logging

from flask import Flask, has_request_context, request

from .extensions import db, migrate, login_manager, babel, api as smorest_api
from core.logging_config import WIKI_LOGGER_NAME, ensure_db_logging


def create_app(config_object=None):
    """アプリケーションファクトリ"""
    from .config import Config
    from .error_handlers import register_error_handlers
    from .request_logging import register_request_logging
    from features.wiki.infrastructure.work_items import (
        WORK_ITEM_RESOLVER_EXTENSION,
        PermissiveWorkItemResolver,
    )

    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    # 拡張初期化
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    babel.init_app(app, locale_selector=_select_locale)
    smorest_api.init_app(app)
    register_error_handlers(app)

    # 作業項目サービスと未連携の場合は存在確認を行わない
    app.extensions.setdefault(WORK_ITEM_RESOLVER_EXTENSION, PermissiveWorkItemResolver())

    from core import models  # noqa: F401 - モデルをメタデータへ登録
    from webapp.api import bp as api_bp
    from features.wiki.presentation import bp as wiki_bp

    smorest_api.register_blueprint(api_bp)
    smorest_api.register_blueprint(wiki_bp)

    wiki_logger = logging.getLogger(WIKI_LOGGER_NAME)
    if app.config.get("DB_LOGGING_ENABLED"):
        with app.app_context():
            ensure_db_logging(wiki_logger)
            ensure_db_logging(app.logger)
    elif wiki_logger.level == logging.NOTSET:
        wiki_logger.setLevel(logging.INFO)

    register_request_logging(app)
    register_cli_commands(app)

    return app


def _select_locale():
    """1) cookie lang 2) Accept-Language 3) default"""
    from flask import current_app

    if not has_request_context():
        return current_app.config.get("BABEL_DEFAULT_LOCALE", "en")

    cookie_lang = request.cookies.get("lang")
    if cookie_lang in current_app.config["LANGUAGES"]:
        return cookie_lang
    return request.accept_languages.best_match(current_app.config["LANGUAGES"])


def register_cli_commands(app):
    """CLI コマンドを登録"""
    import click

    @app.cli.command("merge-item")
    @click.option("--item-type", required=True, type=click.Choice(["feature", "issue"]))
    @click.option("--item-id", required=True, type=int)
    @click.option("--actor-id", required=True, type=int)
    def merge_item(item_type, item_id, actor_id):
        """作業項目に紐づく保留中の変更提案をマージ"""
        from features.wiki.application.merge import WikiMergeEngine

        results = WikiMergeEngine().merge_by_item(item_type, item_id, actor_id)
        for result in results:
            click.echo(f"change {result.change.id}: {result.outcome.value}")
        click.echo(
            f"merged={sum(1 for r in results if r.merged)} "
            f"conflicted={sum(1 for r in results if r.conflicted)}"
        )
