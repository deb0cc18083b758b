"""Per-resource reader/writer locks.

Resources are named by string keys (``warehouse:WH-001``, ``tenant:tenant-1``,
``ledger``). Writers are exclusive per key, readers share a key. Both are
re-entrant for the owning thread so that a coupled operation can call into
another component that locks the same key.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from wms_core.errors import LockTimeout

logger = logging.getLogger(__name__)

LEDGER_KEY = "ledger"


def warehouse_key(warehouse_id: str) -> str:
    return f"warehouse:{warehouse_id}"


def tenant_key(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


class ReadWriteLock:
    """Re-entrant reader/writer lock. Upgrading a read lock is not supported."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: Optional[int] = None
        self._writer_depth = 0

    def acquire_read(self, timeout: float) -> bool:
        me = threading.get_ident()
        with self._cond:
            # a writer reading its own data
            if self._writer == me:
                self._writer_depth += 1
                return True
            if me in self._readers:
                self._readers[me] += 1
                return True
            if not self._cond.wait_for(lambda: self._writer is None, timeout):
                return False
            self._readers[me] = 1
            return True

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._release_write_locked()
                return
            count = self._readers.get(me)
            if not count:
                raise RuntimeError("release_read without a held read lock")
            if count == 1:
                del self._readers[me]
                self._cond.notify_all()
            else:
                self._readers[me] = count - 1

    def acquire_write(self, timeout: float) -> bool:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return True
            if me in self._readers:
                raise RuntimeError("Cannot upgrade a read lock to a write lock")
            ok = self._cond.wait_for(
                lambda: self._writer is None and not self._readers, timeout
            )
            if not ok:
                return False
            self._writer = me
            self._writer_depth = 1
            return True

    def release_write(self) -> None:
        with self._cond:
            if self._writer != threading.get_ident():
                raise RuntimeError("release_write by a thread that does not hold the lock")
            self._release_write_locked()

    def _release_write_locked(self) -> None:
        self._writer_depth -= 1
        if self._writer_depth == 0:
            self._writer = None
            self._cond.notify_all()

    def is_write_locked(self) -> bool:
        with self._cond:
            return self._writer is not None


class LockManager:
    """Hands out one ReadWriteLock per resource key."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._locks: dict[str, ReadWriteLock] = {}
        self._master_lock = threading.Lock()

    def _lock_for(self, key: str) -> ReadWriteLock:
        with self._master_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = ReadWriteLock()
            return lock

    @contextmanager
    def reading(self, *keys: str) -> Iterator[None]:
        with self._hold(keys, write=False):
            yield

    @contextmanager
    def writing(self, *keys: str) -> Iterator[None]:
        with self._hold(keys, write=True):
            yield

    @contextmanager
    def _hold(self, keys: tuple[str, ...], write: bool) -> Iterator[None]:
        # sorted order keeps multi-key acquisition deadlock free
        ordered = sorted(set(keys))
        held: list[ReadWriteLock] = []
        deadline = time.monotonic() + self.timeout
        try:
            for key in ordered:
                lock = self._lock_for(key)
                remaining = max(0.0, deadline - time.monotonic())
                acquired = lock.acquire_write(remaining) if write else lock.acquire_read(remaining)
                if not acquired:
                    logger.warning("Lock timeout: %s (%s)", key, "write" if write else "read")
                    raise LockTimeout(f"Could not lock {key} within {self.timeout}s")
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                if write:
                    lock.release_write()
                else:
                    lock.release_read()

    def is_locked(self, key: str) -> bool:
        with self._master_lock:
            lock = self._locks.get(key)
        return lock is not None and lock.is_write_locked()
