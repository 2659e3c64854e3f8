"""``/api`` リクエスト・レスポンスの構造化ログ"""

from __future__ import annotations

import json
import time
from collections.abc import Mapping, Sequence
from typing import Any
from uuid import uuid4

from flask import Flask, g, request

REQUEST_ID_HEADER = "X-Request-Id"

# ページ本文やスナップショットはログに全文を残さない
MAX_LOGGED_STRING = 120
MAX_LOGGED_BYTES = 60_000


def shorten_strings(value: Any, limit: int = MAX_LOGGED_STRING) -> Any:
    """入れ子の辞書・リストに含まれる長い文字列を切り詰めた複製を返す。"""

    if isinstance(value, str):
        if len(value) <= limit:
            return value
        return f"{value[:limit]}… ({len(value)} chars)"
    if isinstance(value, Mapping):
        return {key: shorten_strings(item, limit) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [shorten_strings(item, limit) for item in value]
    return value


def render_log_payload(payload: dict, *, max_bytes: int = MAX_LOGGED_BYTES) -> str:
    """*payload* をJSON文字列にする。上限を超える場合は本文を省略する。"""

    text = json.dumps(shorten_strings(payload), ensure_ascii=False, default=str)
    size = len(text.encode("utf-8"))
    if size <= max_bytes:
        return text
    return json.dumps(
        {
            "status": payload.get("status"),
            "message": "payload omitted due to size limit",
            "_truncation": {"limitBytes": max_bytes, "originalBytes": size},
        }
    )


def _is_api_path() -> bool:
    return request.path.startswith("/api")


def register_request_logging(app: Flask) -> None:
    """``api.input`` / ``api.output`` イベントと ``Server-Timing`` ヘッダーを登録"""

    @app.before_request
    def _log_input():
        g.start_time = time.perf_counter()
        if not _is_api_path():
            return
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())

        entry: dict[str, Any] = {"method": request.method}
        if request.args:
            entry["args"] = request.args.to_dict()
        body = request.get_json(silent=True)
        if body is not None:
            entry["json"] = body
        app.logger.info(
            render_log_payload(entry),
            extra={"event": "api.input", "request_id": g.request_id, "path": request.path},
        )

    @app.after_request
    def _log_output(response):
        if _is_api_path():
            request_id = getattr(g, "request_id", None)
            body = response.get_json(silent=True) if response.is_json else None
            log = app.logger.warning if response.status_code >= 400 else app.logger.info
            log(
                render_log_payload({"status": response.status_code, "json": body}),
                extra={"event": "api.output", "request_id": request_id, "path": request.path},
            )
            if request_id:
                response.headers[REQUEST_ID_HEADER] = request_id

        started = getattr(g, "start_time", None)
        if started is not None:
            response.headers["Server-Timing"] = f"app;dur={(time.perf_counter() - started) * 1000:.2f}"
        return response


__all__ = ["register_request_logging", "render_log_payload", "shorten_strings"]
