"""
Query module for sheetrecords.

Compiles structured descriptors and bracketed free-form queries into the
query dialect, and parses query responses back into records.
"""

from sheetrecords.query.brackets import BracketTranslator
from sheetrecords.query.builder import QueryBuilder, QueryDescriptor, literal
from sheetrecords.query.parser import ParsedResponse, ResponseParser

__all__ = [
    "BracketTranslator",
    "QueryBuilder",
    "QueryDescriptor",
    "literal",
    "ParsedResponse",
    "ResponseParser",
]
