"""
gspread-backed Grid.

WorksheetGrid reads the data region of one worksheet in a single call and
buffers mutations until flushed. Flushing sends the queue in order, grouping
consecutive operations of the same kind into one API call:

- SetValues   → one ``worksheet.batch_update``
- AppendRows  → one ``worksheet.append_rows``
- DeleteRows  → one spreadsheet ``batch_update`` of deleteDimension requests
- ClearRows   → one ``worksheet.batch_clear``

Idempotent calls are retried with exponential backoff on transient failures.
"""

import itertools
import logging
import time
from typing import Any, Callable, List

import gspread
from gspread.exceptions import APIError

from sheetrecords.exceptions import SheetsAPIError
from sheetrecords.executor.sheets_client import SheetsClient
from sheetrecords.spreadsheet.operations import (
    AppendRows,
    ClearRows,
    DeleteRows,
    GridOp,
    SetValues,
)

logger = logging.getLogger(__name__)


class WorksheetGrid:
    """Grid implementation over a single gspread worksheet.

    Attributes:
        client: SheetsClient wrapper for API calls
        spreadsheet: Spreadsheet containing the worksheet
        worksheet: The backing worksheet
        header_row: 1-indexed row holding the headers
        max_retries: Maximum retry attempts for idempotent calls
        base_delay: Base delay for exponential backoff in seconds
    """

    def __init__(
        self,
        client: SheetsClient,
        spreadsheet: gspread.Spreadsheet,
        worksheet: gspread.Worksheet,
        header_row: int = 1,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        self.client = client
        self.spreadsheet = spreadsheet
        self.worksheet = worksheet
        self.header_row = header_row
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._pending: List[GridOp] = []

    @property
    def pending(self) -> List[GridOp]:
        return list(self._pending)

    def read_data_rows(self) -> List[List[Any]]:
        values = self._retry_operation(
            lambda: self.client.read_values(self.worksheet),
            f"read values from {self.worksheet.title}",
        )
        return values[self.header_row:]

    def queue(self, op: GridOp) -> None:
        self._pending.append(op)

    def discard(self) -> None:
        if self._pending:
            logger.debug("Discarding %d queued operation(s)", len(self._pending))
        self._pending.clear()

    def flush(self) -> None:
        """Send queued operations in order.

        The queue is emptied even when a call fails, so a failed flush is
        never replayed by a later one.

        Raises:
            SheetsAPIError: If a call fails (after retries, where retried)
        """
        pending, self._pending = self._pending, []
        for op_type, group in itertools.groupby(pending, key=type):
            ops = list(group)
            if op_type is SetValues:
                updates = [{"range": op.range, "values": op.values} for op in ops]
                self._retry_operation(
                    lambda: self.client.batch_update_values(self.worksheet, updates),
                    f"batch update {len(updates)} value ranges to {self.worksheet.title}",
                )
            elif op_type is AppendRows:
                # Appends and deletions are not idempotent and are sent once.
                rows = [row for op in ops for row in op.values]
                self.client.append_rows(self.worksheet, rows)
            elif op_type is DeleteRows:
                self.client.delete_rows(self.spreadsheet, self.worksheet, [op.row for op in ops])
            elif op_type is ClearRows:
                start_row = min(op.start_row for op in ops)
                self._retry_operation(
                    lambda: self.client.clear_rows(self.worksheet, start_row),
                    f"clear rows from {start_row} in {self.worksheet.title}",
                )
            else:
                raise TypeError(f"Unknown grid operation: {op_type.__name__}")

    def _retry_operation(self, operation: Callable[[], Any], description: str) -> Any:
        """Execute an operation with retry logic and exponential backoff.

        Args:
            operation: Callable that performs the operation
            description: Human-readable description for error messages

        Returns:
            Result of the operation

        Raises:
            SheetsAPIError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                return operation()
            except (APIError, SheetsAPIError) as e:
                last_error = e
                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning("Failed to %s (attempt %d), retrying in %.1fs: %s",
                                   description, attempt + 1, delay, e)
                    time.sleep(delay)

        raise SheetsAPIError(
            f"Failed to {description} after {self.max_retries + 1} attempts: {last_error}"
        )
