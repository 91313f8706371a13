"""
Distributed lock di atas atomic add/delete.

State per lock key:
    Unlocked -> Locked(holder, expiry) -> Unlocked (unlock atau TTL expiry)

Lock ini ADVISORY:
- unlock() tidak mengecek ownership; siapa saja bisa release lock apapun.
  Caller bisa bergantung pada perilaku ini, jadi jangan "diperbaiki" diam-diam.
- Tidak ada fencing token: holder yang melewati TTL masih bisa merasa
  memegang lock setelah lock diambil actor lain.
"""

import logging
import socket
import time
from typing import Any, Callable, Optional

from .keys import Key
from ..utils.config import Config
from ..utils.metrics import metrics

logger = logging.getLogger(__name__)

# Default TTL lock record (seconds)
LOCK_TIMEOUT = Config.LOCK_TIMEOUT

# Interval busy-wait di with_lock (seconds)
WRITE_LOCK_WAIT = Config.LOCK_WAIT


def lock_key(key: Key) -> str:
    """Logical key dari lock record untuk key"""
    return f"lock:{key}"


class LockMixin:
    """
    Mixin untuk CacheClient: lock, unlock, with_lock, locked.
    """

    lock_timeout = LOCK_TIMEOUT
    lock_wait = WRITE_LOCK_WAIT

    def lock(self, key: Key, expiry: Optional[int] = None) -> Optional[str]:
        """
        Try to acquire lock.

        Returns:
            Holder identity (hostname) jika acquired, None jika sudah di-lock
        """
        holder = socket.gethostname()
        ttl = expiry or self.lock_timeout

        stored = self.add(lock_key(key), holder, expiry=ttl, raw=True)
        metrics.record_lock(stored is not None)

        if stored is None:
            logger.debug(f"Lock on {key!r} is held by another actor")
            return None

        logger.info(f"{holder} acquired lock on {key!r} (ttl={ttl}s)")
        return holder

    def unlock(self, key: Key) -> bool:
        """Delete lock record tanpa ownership check. False jika tidak ada lock."""
        released = self.delete(lock_key(key))
        if released:
            logger.info(f"Released lock on {key!r}")
        return released

    def locked(self, key: Key) -> Optional[str]:
        """Return holder identity sekarang, atau None jika tidak di-lock"""
        found = self.get(lock_key(key), raw=True)
        if found is None:
            return None
        return found.value.decode('utf-8', errors='replace')

    def with_lock(self, key: Key, fn: Callable[[], Any], *, ignore: bool = False,
                  keep: bool = False, expiry: Optional[int] = None) -> Any:
        """
        Run fn di dalam critical section.

        Busy-wait: coba lock, sleep lock_wait, ulangi. Tidak ada batas retry;
        lock yang tidak pernah dilepas hanya hilang lewat TTL di server.

        Args:
            key: Resource yang di-lock
            fn: Critical section
            ignore: Jika lock sedang dipegang, return None tanpa menjalankan fn
            keep: Jangan unlock setelah fn selesai (lock tetap hidup sampai TTL)
            expiry: TTL lock record, default lock_timeout

        Returns:
            Hasil fn, atau None jika ignore dan lock sedang dipegang
        """
        while self.lock(key, expiry=expiry) is None:
            if ignore:
                logger.debug(f"Lock on {key!r} busy, ignoring")
                return None
            logger.warning(f"Waiting {self.lock_wait}s for lock on {key!r}")
            time.sleep(self.lock_wait)

        try:
            return fn()
        finally:
            if not keep:
                self.unlock(key)
