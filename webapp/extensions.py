from core.db import db
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_babel import Babel
from flask import current_app, g

from flask_smorest import Api

from webapp.auth import ACTOR_HEADER, WikiActor

migrate = Migrate()
login_manager = LoginManager()
babel = Babel()
api = Api()

login_manager.login_message = None


@login_manager.user_loader
def load_user(user_id):
    # セッションは利用しないがFlask-Loginの要件として定義する
    try:
        return WikiActor(int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.request_loader
def load_user_from_request(request):
    """ゲートウェイが付与したヘッダーからユーザーをロード"""
    actor = WikiActor.from_header(request.headers.get(ACTOR_HEADER))
    if actor is None:
        current_app.logger.debug(
            "Actor header missing in request_loader",
            extra={"event": "auth.actor.missing", "path": request.path},
        )
        return None

    g.current_user = actor
    return actor


__all__ = ["api", "babel", "db", "login_manager", "migrate"]
