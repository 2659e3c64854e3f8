from __future__ import annotations

from functools import wraps

from flask import current_app, g
from flask_login import UserMixin, current_user, login_required


# 認証はゲートウェイで完了しており、ユーザーIDのみが転送される
ACTOR_HEADER = "X-User-Id"


class WikiActor(UserMixin):
    """リクエストを行った利用者。ユーザー情報自体は外部システムが管理する。"""

    __slots__ = ("id",)

    def __init__(self, actor_id: int) -> None:
        self.id = actor_id

    def get_id(self) -> str:
        return str(self.id)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<WikiActor {self.id}>"

    @classmethod
    def from_header(cls, raw_value: str | None) -> "WikiActor | None":
        if raw_value is None:
            return None
        try:
            actor_id = int(raw_value.strip())
        except (TypeError, ValueError):
            current_app.logger.debug(
                "Invalid actor header",
                extra={"event": "auth.actor.invalid"},
            )
            return None
        if actor_id <= 0:
            return None
        return cls(actor_id)


def actor_required(func):
    """Flask-Login の ``login_required`` に認証マーカーを付与したデコレータ"""

    wrapper = login_required(func)
    wrapper._auth_enforced = True
    return wrapper


def skip_auth(func):
    """Skip authentication for this endpoint"""

    @wraps(func)
    def decorated_function(*args, **kwargs):
        return func(*args, **kwargs)

    decorated_function._skip_auth = True
    return decorated_function


def current_actor_id() -> int:
    actor = getattr(g, "current_user", None) or current_user
    return int(actor.id)
