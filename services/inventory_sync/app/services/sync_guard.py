"""Process-wide guard allowing a single sync at a time"""
from contextlib import contextmanager
from typing import Iterator, Optional
import logging
import threading

from app.services.errors import SyncInProgressError

logger = logging.getLogger(__name__)


class SyncGuard:
    """Single-slot flag with non-blocking acquisition.

    A second trigger while a sync holds the slot is rejected, never queued.
    ``hold()`` releases on every exit path.
    """

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        if self._lock.locked():
            self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self.try_acquire():
            logger.warning("Sync rejected: another sync is in progress")
            raise SyncInProgressError()
        try:
            yield
        finally:
            self.release()


# Singleton instance
_sync_guard: Optional[SyncGuard] = None


def get_sync_guard() -> SyncGuard:
    """Get the sync guard singleton"""
    global _sync_guard
    if _sync_guard is None:
        _sync_guard = SyncGuard()
    return _sync_guard
