"""Wiki機能のプレゼンテーション層"""

from webapp.api.blueprint import AuthEnforcedBlueprint

bp = AuthEnforcedBlueprint(
    "wiki_api",
    __name__,
    url_prefix="/api",
    description="Wiki page change tracking and merge API",
)

from . import api  # noqa: E402,F401

__all__ = ["bp"]
