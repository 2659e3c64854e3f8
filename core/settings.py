"""Centralised application settings abstraction.

This module exposes :class:`ApplicationSettings` which consolidates the
configuration lookups used by the wiki services.  Values are resolved from the
active Flask application's ``config`` first and then from the process
environment (or any mapping provided), returning typed values and sensible
defaults.

The global :data:`settings` instance should be used for production code, while
tests can instantiate their own :class:`ApplicationSettings` with a dedicated
mapping to validate behaviour in isolation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar, Mapping, Optional, cast, TYPE_CHECKING

from flask import current_app, has_app_context

if TYPE_CHECKING:  # pragma: no cover
    from flask import Flask


CAS_STRATEGY_CONDITIONAL_UPDATE = "conditional_update"
CAS_STRATEGY_PAGE_LOCK = "page_lock"


@dataclass(frozen=True)
class _EnvironmentFacade:
    """Thin wrapper that provides ``Mapping`` compatible access to env vars."""

    source: Mapping[str, str]

    @classmethod
    def from_environ(cls, env: Optional[Mapping[str, str]] = None) -> "_EnvironmentFacade":
        return cls(source=os.environ if env is None else env)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.source.get(key, default)


class ApplicationSettings:
    """Domain level representation of configuration values.

    The class favours explicit properties instead of generic ``get`` access so
    that the rest of the application operates on intent-revealing names.
    """

    _CAS_STRATEGIES: ClassVar[tuple[str, ...]] = (
        CAS_STRATEGY_CONDITIONAL_UPDATE,
        CAS_STRATEGY_PAGE_LOCK,
    )

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self._env = _EnvironmentFacade.from_environ(env)

    def _get(self, key: str):
        if has_app_context():
            app = cast("Flask", current_app)
            if key in app.config:
                return app.config.get(key)
        return self._env.get(key)

    def get(self, key: str, default=None):
        """Return the configured value for *key* or *default* if missing."""

        value = self._get(key)
        return default if value is None else value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return a boolean configuration value."""

        value = self._get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            normalised = value.strip().lower()
            if normalised in {"1", "true", "yes", "on"}:
                return True
            if normalised in {"0", "false", "no", "off"}:
                return False
        return default

    def get_int(self, key: str, default: int = 0) -> int:
        """Return an integer configuration value."""

        value = self._get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    # ------------------------------------------------------------------
    # Wiki merge configuration
    # ------------------------------------------------------------------
    @property
    def wiki_cas_strategy(self) -> str:
        value = str(self.get("WIKI_CAS_STRATEGY", CAS_STRATEGY_CONDITIONAL_UPDATE)).strip().lower()
        if value not in self._CAS_STRATEGIES:
            return CAS_STRATEGY_CONDITIONAL_UPDATE
        return value

    @property
    def wiki_record_delta(self) -> bool:
        return self.get_bool("WIKI_RECORD_DELTA", False)

    @property
    def wiki_default_page_size(self) -> int:
        return max(self.get_int("WIKI_DEFAULT_PAGE_SIZE", 20), 1)

    @property
    def wiki_max_page_size(self) -> int:
        return max(self.get_int("WIKI_MAX_PAGE_SIZE", 100), self.wiki_default_page_size)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    @property
    def db_logging_enabled(self) -> bool:
        return self.get_bool("DB_LOGGING_ENABLED", False)


settings = ApplicationSettings()

__all__ = [
    "ApplicationSettings",
    "CAS_STRATEGY_CONDITIONAL_UPDATE",
    "CAS_STRATEGY_PAGE_LOCK",
    "settings",
]
