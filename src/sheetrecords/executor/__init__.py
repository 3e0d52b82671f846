"""
Executor module for sheetrecords.

This module provides the collaborators behind SheetTable: ``WorksheetGrid``
and ``SheetsClient`` for the gspread write path, ``GvizTransport`` for the
query endpoint, the write locks, and the locked ``WriteExecutor``.
"""

from sheetrecords.executor.base import Grid, Lock, Transport
from sheetrecords.executor.gviz import GvizTransport, token_provider_from_gspread
from sheetrecords.executor.locking import ProcessLock, ThreadLock, lock_path_for
from sheetrecords.executor.matcher import ConditionMatcher
from sheetrecords.executor.sheets_client import SheetsClient
from sheetrecords.executor.worksheet_grid import WorksheetGrid
from sheetrecords.executor.write_executor import WriteExecutor

__all__ = [
    "Grid",
    "Lock",
    "Transport",
    "GvizTransport",
    "token_provider_from_gspread",
    "ProcessLock",
    "ThreadLock",
    "lock_path_for",
    "ConditionMatcher",
    "SheetsClient",
    "WorksheetGrid",
    "WriteExecutor",
]
