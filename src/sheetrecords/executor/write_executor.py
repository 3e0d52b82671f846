"""
Locked write execution.

Every mutation of the backing grid runs through WriteExecutor.execute exactly
once per logical operation (a batch is one operation). The executor:

1. acquires the write lock, waiting at most ``lock_wait_ms``
2. runs the action, which reads rows and queues mutations on the grid
3. flushes the grid so every queued mutation is applied before returning
4. releases the lock on every exit path

An action signals failure by raising; the error is converted into a failed
Result and the queued mutations are discarded, so a failed action applies
nothing.
"""

import logging
from typing import Any, Callable

from sheetrecords.exceptions import LockTimeoutError, NotFoundError, SheetRecordsError
from sheetrecords.result import Result

logger = logging.getLogger(__name__)

DEFAULT_LOCK_WAIT_MS = 30000


class WriteExecutor:
    """Serializes mutating actions against one grid.

    Attributes:
        grid: Grid the actions mutate
        lock: Mutual-exclusion capability shared by all writers of the grid
        lock_wait_ms: Bound on lock acquisition in milliseconds
    """

    def __init__(self, grid, lock, lock_wait_ms: int = DEFAULT_LOCK_WAIT_MS) -> None:
        self.grid = grid
        self.lock = lock
        self.lock_wait_ms = lock_wait_ms

    def execute(self, action: Callable[[], Any], description: str = "write") -> Result:
        """Run ``action`` under the write lock and flush its mutations.

        Args:
            action: Callable queuing mutations on the grid; its return value
                becomes the Result payload
            description: Operation name used in log messages

        Returns:
            Result carrying the action's return value, or the failure
        """
        if not self.lock.acquire(self.lock_wait_ms / 1000.0):
            error = LockTimeoutError(
                f"{description}: write lock not acquired within {self.lock_wait_ms} ms"
            )
            logger.warning("%s", error)
            return Result.failure(error)

        try:
            try:
                value = action()
                self.grid.flush()
            except NotFoundError as e:
                self.grid.discard()
                logger.debug("%s: %s", description, e)
                return Result.failure(e)
            except SheetRecordsError as e:
                self.grid.discard()
                logger.warning("%s failed: %s", description, e)
                return Result.failure(e)
            except Exception as e:
                self.grid.discard()
                logger.exception("%s failed unexpectedly", description)
                return Result.failure(e)
            return Result.success(value)
        finally:
            self.lock.release()
