"""
Pending grid mutations.

The write path never touches the sheet directly: a write action queues these
operations on its Grid, and the grid sends them in order when the write
executor flushes it. Row numbers are 1-indexed physical rows and are only
meaningful within the write that queued them.

- AppendRows: Add rows after the last non-empty row
- SetValues: Overwrite a rectangular region of cells
- DeleteRows: Remove one physical row, shifting the rows below it up
- ClearRows: Blank every cell from a row downwards (the data region)
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Union


@dataclass
class AppendRows:
    """Append rows below the existing data.

    Attributes:
        values: 2D list of cell values, one inner list per row in header order
    """
    values: List[List[Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "AppendRows", "values": self.values}


@dataclass
class SetValues:
    """Write static values to a rectangular cell region.

    Attributes:
        range: Target region in A1 notation (e.g. "B4" or "A4:D4")
        values: 2D list of cell values (rows × columns)
    """
    range: str
    values: List[List[Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "SetValues", "range": self.range, "values": self.values}


@dataclass
class DeleteRows:
    """Delete a single physical row.

    Callers deleting several rows must queue them from the bottom up so that
    earlier deletions do not shift the rows still to be deleted.

    Attributes:
        row: Physical row number (1-indexed)
    """
    row: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "DeleteRows", "row": self.row}


@dataclass
class ClearRows:
    """Blank all cells from ``start_row`` to the bottom of the sheet.

    Attributes:
        start_row: First physical row to clear (1-indexed)
    """
    start_row: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "ClearRows", "start_row": self.start_row}


GridOp = Union[AppendRows, SetValues, DeleteRows, ClearRows]
