"""Blueprint that refuses to register API routes without an auth decision."""
from __future__ import annotations

from collections.abc import Iterable
import inspect
from typing import Callable

from flask.views import MethodView
from flask_smorest import Blueprint as SmorestBlueprint


_AUTH_MARKERS = ("_skip_auth", "_auth_enforced")


def _iter_wrapped(callable_obj: Callable) -> Iterable[Callable]:
    """Yield the callable and all wrappers referenced via ``__wrapped__``."""

    current = callable_obj
    seen: set[Callable] = set()
    while current and current not in seen:
        yield current
        seen.add(current)
        current = getattr(current, "__wrapped__", None)


def _has_auth_marker(func: Callable) -> bool:
    return any(
        getattr(candidate, marker, False)
        for candidate in _iter_wrapped(func)
        for marker in _AUTH_MARKERS
    )


class AuthEnforcedBlueprint(SmorestBlueprint):
    """Every view must be decorated with ``actor_required`` or ``skip_auth``."""

    def add_url_rule(  # type: ignore[override]
        self,
        rule,
        endpoint=None,
        view_func=None,
        provide_automatic_options=None,
        *,
        parameters=None,
        tags=None,
        **options,
    ):
        if view_func is None:
            raise TypeError("view_func must be provided")

        if inspect.isclass(view_func) and issubclass(view_func, MethodView):
            candidate = view_func.as_view(endpoint or view_func.__name__)
        else:
            candidate = view_func

        if not _has_auth_marker(candidate):
            view_name = endpoint or getattr(view_func, "__name__", "<unnamed>")
            raise RuntimeError(
                f"API route '{rule}' (endpoint '{view_name}') must declare an authentication decorator."
            )

        return super().add_url_rule(
            rule,
            endpoint=endpoint,
            view_func=view_func,
            provide_automatic_options=provide_automatic_options,
            parameters=parameters,
            tags=tags,
            **options,
        )


__all__ = ["AuthEnforcedBlueprint"]
