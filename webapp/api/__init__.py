from .blueprint import AuthEnforcedBlueprint

bp = AuthEnforcedBlueprint("api", __name__, url_prefix="/api", description="Service health checks")

from . import health  # noqa: E402,F401
