"""
Write-lock implementations.

ProcessLock serializes writers across processes with a lock file, so every
process that writes to the same worksheet contends on the same file.
ThreadLock serializes writers within one process.
"""

import hashlib
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional

from filelock import FileLock
from filelock import Timeout as FileLockTimeout

logger = logging.getLogger(__name__)


def lock_path_for(spreadsheet_id: str, sheet_name: str, lock_dir: Optional[str] = None) -> Path:
    """Lock file shared by every writer of one worksheet."""
    digest = hashlib.sha1(f"{spreadsheet_id}\0{sheet_name}".encode("utf-8")).hexdigest()[:16]
    return Path(lock_dir or tempfile.gettempdir()) / f"sheetrecords-{digest}.lock"


class ProcessLock:
    """Cross-process exclusive lock backed by ``filelock.FileLock``.

    Example:
        lock = ProcessLock(lock_path_for(spreadsheet.id, "Users"))
        if lock.acquire(timeout=30.0):
            try:
                ...  # protected region
            finally:
                lock.release()
    """

    def __init__(self, lock_path: Path, poll_interval: float = 0.05) -> None:
        self.lock_path = Path(lock_path)
        self.poll_interval = poll_interval
        self._lock = FileLock(str(self.lock_path))

    def acquire(self, timeout: float) -> bool:
        try:
            self._lock.acquire(timeout=timeout, poll_interval=self.poll_interval)
        except FileLockTimeout:
            logger.warning("Timed out after %.1fs waiting for write lock %s",
                           timeout, self.lock_path)
            return False
        return True

    def release(self) -> None:
        self._lock.release()


class ThreadLock:
    """In-process exclusive lock backed by ``threading.Lock``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=timeout)

    def release(self) -> None:
        self._lock.release()
