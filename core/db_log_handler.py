import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Set

from flask import current_app, has_app_context
from sqlalchemy import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .db import db

if TYPE_CHECKING:  # pragma: no cover
    from flask import Flask


_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "stacklevel",
    "taskName",
}

# Attributes stored in dedicated columns rather than the JSON payload.
_COLUMN_ATTRS = {"event", "path", "request_id", "page_id", "change_id"}


def _extract_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Return custom attributes attached to *record* for persistence."""

    extras: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key in _COLUMN_ATTRS:
            continue
        if key.startswith("_"):
            continue
        extras[key] = value
    return extras


def _coerce_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class DBLogHandler(logging.Handler):
    """Logging handler that persists logs to the ``log`` table.

    Records are written on their own connection so a log line survives the
    rollback of the business transaction that produced it.
    """

    def __init__(self, app: Optional["Flask"] = None, *, engine: Optional[Engine] = None) -> None:
        super().__init__()
        self._app = app
        self._engine: Optional[Engine] = engine
        self._ensured_engines: Set[int] = set()

    def bind_to_app(self, app: "Flask") -> None:
        """Rebind this handler to *app* and reset cached engines."""

        self._app = app
        self._engine = None
        self._ensured_engines.clear()

    def _resolve_engine(self) -> Engine:
        if self._engine is not None:
            return self._engine

        if has_app_context():
            engine = db.engine
        elif self._app is not None:
            with self._app.app_context():
                engine = db.engine
        else:
            raise RuntimeError("DBLogHandler requires an application or an engine")

        self._engine = engine
        return engine

    def _ensure_table(self, engine: Engine) -> None:
        marker = id(engine)
        if marker in self._ensured_engines:
            return
        log_model = self._get_log_model()
        log_model.__table__.create(bind=engine, checkfirst=True)
        self._ensured_engines.add(marker)

    def emit(self, record: logging.LogRecord) -> None:
        trace = None
        if record.exc_info:
            formatter = logging.Formatter()
            trace = formatter.formatException(record.exc_info)

        raw_message = record.getMessage()
        try:
            payload = json.loads(raw_message)
            if not isinstance(payload, dict):
                payload = {"message": payload}
        except ValueError:
            payload = {"message": raw_message}

        payload.setdefault("_meta", {})
        payload["_meta"].update(
            {
                "logger": record.name,
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
                "level": record.levelname,
            }
        )

        extras = _extract_extras(record)
        if extras:
            payload["_extra"] = extras

        event = getattr(record, "event", None) or record.name or "general"
        event = str(event)[:50]

        path_value = getattr(record, "path", None)
        if isinstance(path_value, str):
            path_value = path_value[:255]

        request_id = getattr(record, "request_id", None)
        if request_id is not None:
            request_id = str(request_id)[:36]

        values = {
            "level": record.levelname,
            "event": event,
            "message": json.dumps(payload, ensure_ascii=False, default=str),
            "trace": trace,
            "path": path_value,
            "request_id": request_id,
            "page_id": _coerce_int(getattr(record, "page_id", None)),
            "change_id": _coerce_int(getattr(record, "change_id", None)),
        }

        try:
            engine = self._resolve_engine()
            self._ensure_table(engine)
            with engine.begin() as conn:
                conn.execute(insert(self._get_log_model()).values(**values))
        except (SQLAlchemyError, RuntimeError):
            self.handleError(record)

    def _get_log_model(self):
        from .models.log import Log  # Local import to avoid circular dependencies

        return Log


__all__ = ["DBLogHandler"]
