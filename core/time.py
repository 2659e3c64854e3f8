"""Time-related helpers.

All persisted timestamps are produced through :func:`utc_now` so that pages
and change proposals share a single notion of "now".  API payloads use
:func:`isoformat_or_none`, which renders aware values with a ``Z`` suffix.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as an aware ``datetime`` instance."""

    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive values (SQLite drops tzinfo) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat_or_none(value: datetime | None) -> str | None:
    """Return *value* in ISO 8601 format ending with ``Z`` or ``None``."""

    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
