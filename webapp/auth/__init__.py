"""APIゲートウェイから転送された認証済みユーザーの受け取り"""

from .principal import ACTOR_HEADER, WikiActor, actor_required, current_actor_id, skip_auth

__all__ = ["ACTOR_HEADER", "WikiActor", "actor_required", "current_actor_id", "skip_auth"]
