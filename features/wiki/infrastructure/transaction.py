"""Wiki操作のトランザクション境界"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from core.db import db


@contextmanager
def wiki_transaction() -> Iterator[Session]:
    """正常終了時にコミットし、例外発生時はロールバックして再送出する。

    ページの本文更新と提案の状態遷移は同じトランザクションで確定させる。
    """

    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


__all__ = ["wiki_transaction"]
