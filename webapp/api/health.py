"""Liveness / readiness checks"""

from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.settings import settings
from webapp.auth import skip_auth

from . import bp
from ..extensions import db


def _database_reachable() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db.session.rollback()
        return False
    return True


@bp.get("/health/live")
@skip_auth
def health_live():
    return jsonify({"status": "ok"}), 200


@bp.get("/health/ready")
@skip_auth
def health_ready():
    """DB接続と有効な書き込み方式を返す"""
    db_ok = _database_reachable()
    body = {
        "status": "ok" if db_ok else "error",
        "db": "ok" if db_ok else "error",
        "casStrategy": settings.wiki_cas_strategy,
    }
    return jsonify(body), 200 if db_ok else 503
