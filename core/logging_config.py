"""Logging configuration for the wiki services."""

from __future__ import annotations

import logging
from typing import Optional

from flask import current_app, has_app_context


WIKI_LOGGER_NAME = "wiki"

_APPDB_HANDLER_ATTR = "_is_appdb_log_handler"


def _create_appdb_db_handler() -> logging.Handler:
    """Create a DBLogHandler bound to the current application."""

    from core.db_log_handler import DBLogHandler

    app_obj = current_app._get_current_object() if has_app_context() else None
    handler = DBLogHandler(app=app_obj)
    handler.setLevel(logging.INFO)
    setattr(handler, _APPDB_HANDLER_ATTR, True)
    return handler


def ensure_db_logging(logger: logging.Logger) -> None:
    """Attach the database-backed log handler to *logger* if missing."""

    from core.db_log_handler import DBLogHandler

    for handler in logger.handlers:
        if getattr(handler, _APPDB_HANDLER_ATTR, False):
            break
        if isinstance(handler, DBLogHandler):
            setattr(handler, _APPDB_HANDLER_ATTR, True)
            break
    else:
        logger.addHandler(_create_appdb_db_handler())

    if logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)


def get_wiki_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the wiki logger or one of its children."""

    if name:
        return logging.getLogger(f"{WIKI_LOGGER_NAME}.{name}")
    return logging.getLogger(WIKI_LOGGER_NAME)


def log_wiki_info(logger: logging.Logger, message: str, event: str, **extra_attrs) -> None:
    """Log wiki info with an event identifier for database storage.

    Args:
        logger: Logger instance to use.
        message: Info message.
        event: Event identifier for categorization (``wiki.change.merged`` …).
        **extra_attrs: Additional attributes such as ``page_id`` or ``change_id``.
    """
    logger.info(message, extra={"event": event, **extra_attrs})


def log_wiki_warning(logger: logging.Logger, message: str, event: str, **extra_attrs) -> None:
    """Log a recoverable wiki condition (conflicts, stale writes, skipped items)."""
    logger.warning(message, extra={"event": event, **extra_attrs})


def log_wiki_error(logger: logging.Logger, message: str, event: str, exc_info: bool = True, **extra_attrs) -> None:
    """Log wiki error with exception information."""
    logger.error(message, exc_info=exc_info, extra={"event": event, **extra_attrs})


__all__ = [
    "WIKI_LOGGER_NAME",
    "ensure_db_logging",
    "get_wiki_logger",
    "log_wiki_error",
    "log_wiki_info",
    "log_wiki_warning",
]
