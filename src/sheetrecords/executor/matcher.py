"""
Condition matching against physical rows.

Mutations must act on specific rows of the grid, not on a query result set,
so they locate their targets by scanning the data region directly. Values are
compared by their text form: ``10``, ``10.0`` and ``"10"`` all match a cell
holding the number 10, whatever its number format.
"""

import logging
import numbers
from typing import Any, List, Mapping, Optional

from sheetrecords.spreadsheet.columns import ColumnInfo

logger = logging.getLogger(__name__)


def as_text(value: Any) -> str:
    """Text form used for comparisons (None → "", True → "TRUE", 10.0 → "10")."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, numbers.Real) and not isinstance(value, numbers.Integral):
        if float(value).is_integer():
            return str(int(value))
    return str(value)


class ConditionMatcher:
    """Finds the physical rows whose cells equal a set of conditions.

    Attributes:
        grid: Grid whose data region is scanned
        columns: Column snapshot used to resolve header names to positions
    """

    def __init__(self, grid, columns: Optional[ColumnInfo]) -> None:
        self.grid = grid
        self.columns = columns

    def match(self, conditions: Mapping[str, Any], first_only: bool = False) -> List[int]:
        """Return the 1-indexed row numbers matching every condition, ascending.

        Unknown header names are dropped. No rows match when ``conditions``
        is empty, the column snapshot is unavailable, or no condition resolves.

        Args:
            conditions: Header name → expected value
            first_only: Stop at the first matching row
        """
        if not conditions:
            logger.warning("Refusing to match rows without conditions")
            return []
        if self.columns is None or self.columns.is_empty:
            logger.warning("Column metadata unavailable; no rows matched")
            return []

        resolved = []
        for name, expected in conditions.items():
            index = self.columns.header_to_index.get(name)
            if index is None:
                logger.warning("Dropping unknown column %r from conditions", name)
                continue
            resolved.append((index, as_text(expected)))
        if not resolved:
            logger.warning("None of the condition columns %s exist; no rows matched",
                           list(conditions))
            return []

        first_data_row = self.grid.header_row + 1
        matches = []
        for offset, row in enumerate(self.grid.read_data_rows()):
            if all(as_text(row[i] if i < len(row) else None) == text for i, text in resolved):
                matches.append(first_data_row + offset)
                if first_only:
                    break
        return matches
