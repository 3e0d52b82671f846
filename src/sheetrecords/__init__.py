"""
sheetrecords - Record-oriented CRUD and queries over a Google Sheets worksheet.

A worksheet whose first row holds column headers is exposed as a table of
records (header → value dictionaries). Reads run through the spreadsheet
query endpoint; writes mutate cells directly under a cross-process lock.

Usage:
    >>> import gspread
    >>> import sheetrecords
    >>> table = sheetrecords.open_table(gspread.service_account(), storeLocator="1AbC...")
    >>> table.create({"id": "u1", "Name": "Ada"})
    True
    >>> table.find_by_id("u1")
    {'id': 'u1', 'Name': 'Ada'}

Key components:
- SheetTable: the public record API
- MetadataCache: header ↔ positional code ↔ type mapping
- QueryBuilder / BracketTranslator: compile reads into the query dialect
- ResponseParser: decode query responses into typed records
- WriteExecutor: locked, flushed execution of mutations
"""

import logging

from .config import SheetConfig
from .exceptions import *
from .query import BracketTranslator, QueryBuilder, QueryDescriptor, ResponseParser
from .result import Result
from .spreadsheet import ColumnInfo, MetadataCache, TypeTag
from .table import SheetTable, open_table

__version__ = "0.1.0"

__all__ = [
    "SheetTable",
    "open_table",
    "SheetConfig",
    "QueryDescriptor",
    "QueryBuilder",
    "BracketTranslator",
    "ResponseParser",
    "ColumnInfo",
    "MetadataCache",
    "TypeTag",
    "Result",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
