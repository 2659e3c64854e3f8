import os
import sys
from pathlib import Path

import pytest
from flask.testing import FlaskClient

os.environ.setdefault("TESTING", "true")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


ACTOR_ID = 7
OTHER_ACTOR_ID = 8
PROJECT_ID = 1


@pytest.fixture
def app(tmp_path):
    """一時ファイルのSQLiteを使うアプリケーション"""
    from webapp import create_app
    from webapp.config import TestConfig
    from webapp.extensions import db

    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"

    app = create_app(_Config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def db_session(app):
    from webapp.extensions import db

    return db.session


@pytest.fixture
def work_items(app):
    """登録済みの作業項目のみを受け付けるリゾルバ"""
    from features.wiki.infrastructure.work_items import (
        WORK_ITEM_RESOLVER_EXTENSION,
        InMemoryWorkItemResolver,
    )

    resolver = InMemoryWorkItemResolver()
    app.extensions[WORK_ITEM_RESOLVER_EXTENSION] = resolver
    return resolver


@pytest.fixture
def page_service(app):
    from features.wiki.application.services import WikiPageService

    return WikiPageService()


@pytest.fixture
def change_service(app):
    from features.wiki.application.services import WikiChangeService

    return WikiChangeService()


@pytest.fixture
def merge_engine(page_service, change_service):
    from features.wiki.application.merge import WikiMergeEngine

    return WikiMergeEngine(page_service=page_service, change_service=change_service)


@pytest.fixture
def resolver(merge_engine):
    from features.wiki.application.merge import WikiConflictResolver

    return WikiConflictResolver(merge_engine=merge_engine)


@pytest.fixture
def make_page(page_service):
    def _make(title="Design Notes", content="<p>v0</p>", project_id=PROJECT_ID, **kwargs):
        return page_service.create_page(
            project_id=project_id,
            title=title,
            content=content,
            actor_id=ACTOR_ID,
            **kwargs,
        )

    return _make


class RequestScopedClient(FlaskClient):
    """リクエストごとに新しいアプリケーションコンテキストで実行するテストクライアント

    ``app`` フィクスチャが保持するコンテキストの ``g`` (Flask-Login の
    キャッシュ済みユーザーなど) がリクエスト間で共有されないようにする。
    """

    def open(self, *args, **kwargs):
        with self.application.app_context():
            return super().open(*args, **kwargs)


@pytest.fixture
def client(app):
    app.test_client_class = RequestScopedClient
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": str(ACTOR_ID)}
