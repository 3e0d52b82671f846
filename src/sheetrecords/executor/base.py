"""
Collaborator interfaces consumed by the table.

The table does no spreadsheet I/O of its own.
It consumes three capabilities:

- Grid: bulk reads of the data region and queued, flushable cell mutations
- Transport: the read path, which runs a query-dialect string and returns
  the raw response envelope
- Lock: a mutual-exclusion primitive with bounded acquisition

Concrete implementations include WorksheetGrid (gspread), GvizTransport
(HTTP query endpoint) and ProcessLock / ThreadLock. Tests substitute
in-memory fakes.
"""

from typing import Any, List, Protocol

from sheetrecords.spreadsheet.operations import GridOp


class Grid(Protocol):
    """Cell-level access to the backing grid.

    Attributes:
        header_row: 1-indexed row holding the header names; data rows follow it
    """

    header_row: int

    def read_data_rows(self) -> List[List[Any]]:
        """Return every row below the header row as cell values, in one read."""
        ...

    def queue(self, op: GridOp) -> None:
        """Queue a mutation to be sent on the next flush."""
        ...

    def flush(self) -> None:
        """Send every queued mutation, in queue order, and wait until applied."""
        ...

    def discard(self) -> None:
        """Drop queued mutations without sending them."""
        ...


class Transport(Protocol):
    """Read-path collaborator running queries against the backing grid."""

    def fetch(self, tq: str) -> str:
        """Run query text ``tq`` and return the raw response envelope.

        Raises:
            TransportError: If the request fails or the status is not OK
        """
        ...


class Lock(Protocol):
    """Process-wide mutual exclusion with a bounded wait."""

    def acquire(self, timeout: float) -> bool:
        """Try to acquire the lock, waiting at most ``timeout`` seconds.

        Returns:
            True if the lock is now held, False on timeout
        """
        ...

    def release(self) -> None:
        ...
