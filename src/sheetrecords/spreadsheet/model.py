"""
Grid addressing helpers.

The query dialect and the cell API both address columns by their positional
letter code (A, B, ..., Z, AA, ...). This module converts between those codes
and 0-indexed column positions, builds A1 references for the write path, and
converts Python values into cell-safe representations.
"""

import datetime as _dt
import re
from typing import Any, Optional

_CELL_RE = re.compile(r"^([A-Z]+)(\d+)$")


def column_letter(col: int) -> str:
    """Convert a 0-indexed column position to its positional letter code.

    Args:
        col: Column number (0 = A, 25 = Z, 26 = AA, ...)

    Returns:
        Column letter(s) in A1 notation

    Raises:
        ValueError: If col is negative
    """
    if col < 0:
        raise ValueError("Column position must be non-negative (0-indexed)")
    n = col + 1
    letters = ""
    while n > 0:
        n -= 1
        letters = chr(65 + (n % 26)) + letters
        n //= 26
    return letters


def column_index(letters: str) -> int:
    """Convert a positional letter code back to a 0-indexed column position.

    Raises:
        ValueError: If letters is not a valid column code
    """
    letters = letters.strip().upper()
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ValueError(f"Invalid column code: {letters!r}")
    n = 0
    for char in letters:
        n = n * 26 + (ord(char) - 64)
    return n - 1


class Range:
    """A rectangular cell region addressed in A1 notation.

    Rows are 1-indexed physical row numbers (the same numbering the cell API
    uses); columns are 0-indexed positions.

    Attributes:
        row: First row (1-indexed)
        col: First column (0-indexed)
        row_end: Last row (1-indexed, inclusive)
        col_end: Last column (0-indexed, inclusive)
    """

    def __init__(
        self,
        row: int,
        col: int,
        row_end: Optional[int] = None,
        col_end: Optional[int] = None,
    ) -> None:
        if row < 1 or col < 0:
            raise ValueError("Row must be >= 1 and column must be >= 0")

        self.row = row
        self.col = col
        self.row_end = row_end if row_end is not None else row
        self.col_end = col_end if col_end is not None else col

        if self.row_end < self.row or self.col_end < self.col:
            raise ValueError("End coordinates must be >= start coordinates")

    @classmethod
    def from_a1(cls, notation: str) -> "Range":
        """Parse ``"B3"`` or ``"A2:D10"`` into a Range.

        Raises:
            ValueError: If notation is invalid
        """
        parts = notation.strip().upper().split(":")
        if not parts[0] or len(parts) > 2:
            raise ValueError(f"Invalid range notation: {notation!r}")

        cells = []
        for part in parts:
            match = _CELL_RE.match(part.strip())
            if not match:
                raise ValueError(f"Invalid range notation: {notation!r}")
            letters, row = match.groups()
            cells.append((int(row), column_index(letters)))

        (row, col), (row_end, col_end) = cells[0], cells[-1]
        return cls(row=row, col=col, row_end=row_end, col_end=col_end)

    def to_a1(self) -> str:
        start = f"{column_letter(self.col)}{self.row}"
        if self.row == self.row_end and self.col == self.col_end:
            return start
        return f"{start}:{column_letter(self.col_end)}{self.row_end}"

    def __repr__(self) -> str:
        return f"Range({self.to_a1()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return (
            self.row == other.row
            and self.col == other.col
            and self.row_end == other.row_end
            and self.col_end == other.col_end
        )


def to_cell_value(value: Any) -> Any:
    """Convert a record value to something the cell API accepts.

    - None → "" (an empty cell)
    - bool, int, float and str → as-is
    - datetime → "YYYY-MM-DD HH:MM:SS", date → "YYYY-MM-DD", time → "HH:MM:SS"
      (user-entered writes let the sheet parse these back into typed cells)
    - anything else → its string form
    """
    if value is None:
        return ""
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, _dt.datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, _dt.date):
        return value.isoformat()
    if isinstance(value, _dt.time):
        return value.strftime("%H:%M:%S")
    return str(value)
