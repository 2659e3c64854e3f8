"""Centralized HTTP error handling returning JSON for API requests."""
import json

from flask import current_app, g, jsonify, request
from flask_babel import gettext as _, get_locale
from werkzeug.exceptions import HTTPException, InternalServerError


def _localize_message(message: str) -> str:
    return _(message) if message else message


def _error_payload(error: HTTPException) -> dict:
    code = error.code or 500
    data = getattr(error, "data", None) or {}

    if code >= 500:
        message = _localize_message(error.name or "Internal Server Error")
    else:
        message = data.get("message") or _localize_message(error.name or "Error")

    payload = {"status": "error", "code": code, "message": message}
    if code < 500:
        if data.get("messages"):
            payload["errors"] = data["messages"]
        if data.get("details"):
            payload["details"] = data["details"]
    return payload


def _request_summary(code: int) -> dict:
    summary = {
        "method": request.method,
        "path": request.path,
        "status": code,
    }
    qs = request.query_string.decode()
    if qs:
        summary["query_string"] = qs
    return summary


def register_error_handlers(app):
    """Register global error handlers.

    Must run after ``Api.init_app`` so that these handlers replace the
    flask-smorest defaults.
    """

    def handle_http_exception(error: HTTPException):
        code = error.code or 500
        log_extra = {"request_id": getattr(g, "request_id", None), "path": request.path}
        summary = json.dumps(_request_summary(code), ensure_ascii=False)
        if code >= 500:
            current_app.logger.error(summary, exc_info=error, extra={"event": "api.http_5xx", **log_extra})
        else:
            current_app.logger.warning(summary, extra={"event": "api.http_4xx", **log_extra})

        payload = _error_payload(error)

        response = jsonify(payload)
        response.status_code = code
        response.headers["Content-Language"] = str(
            get_locale() or current_app.config.get("BABEL_DEFAULT_LOCALE", "en")
        )
        if getattr(error, "data", None) and error.data.get("headers"):
            response.headers.update(error.data["headers"])
        return response

    def handle_unexpected_exception(error: Exception):
        # 5xx の詳細は返さない
        current_app.logger.exception(
            json.dumps(_request_summary(500), ensure_ascii=False),
            extra={
                "event": "api.http_5xx",
                "request_id": getattr(g, "request_id", None),
                "path": request.path,
            },
        )
        wrapped = InternalServerError()
        response = jsonify(_error_payload(wrapped))
        response.status_code = 500
        return response

    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_exception)

    @app.errorhandler(401)
    def handle_unauthorized(error):
        """Return a JSON authentication error."""
        current_app.logger.info(
            "401 %s",
            request.path,
            extra={"event": "api.unauthorized", "path": request.path},
        )
        return (
            jsonify(
                {
                    "status": "unauthorized",
                    "code": 401,
                    "message": _localize_message("Authentication required."),
                }
            ),
            401,
        )


__all__ = ["register_error_handlers"]
