"""ページ単位のプロセス内ロック"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class PageLockRegistry:
    """``pageId`` ごとに単一の書き込み区間を提供する。

    ``WIKI_CAS_STRATEGY=page_lock`` のときに条件付き UPDATE と併用される。
    プロセスをまたぐ排他は条件付き UPDATE 側が担う。
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, page_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(page_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[page_id] = lock
            return lock

    @contextmanager
    def hold(self, page_id: int) -> Iterator[None]:
        lock = self._lock_for(page_id)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


page_locks = PageLockRegistry()

__all__ = ["PageLockRegistry", "page_locks"]
