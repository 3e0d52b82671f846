"""
Spreadsheet model module.

This module provides grid addressing helpers, the column metadata cache, and
the pending mutation types queued by the write path.
"""

from sheetrecords.spreadsheet.columns import ColumnInfo, MetadataCache, TypeTag
from sheetrecords.spreadsheet.model import Range, column_index, column_letter, to_cell_value
from sheetrecords.spreadsheet.operations import (
    AppendRows,
    ClearRows,
    DeleteRows,
    GridOp,
    SetValues,
)

__all__ = [
    "ColumnInfo",
    "MetadataCache",
    "TypeTag",
    "Range",
    "column_index",
    "column_letter",
    "to_cell_value",
    "AppendRows",
    "ClearRows",
    "DeleteRows",
    "GridOp",
    "SetValues",
]
