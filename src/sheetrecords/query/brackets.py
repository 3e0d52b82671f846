"""
Bracketed query translation.

Free-form queries are written in the query dialect with column references
spelled as ``[Header Name]``:

    select [Name], [Age] where [Age] > 30 order by [Name]

Each bracketed name is replaced by its positional code. Unlike the
structured builder, translation fails on any name it cannot resolve.
"""

import re
from typing import Optional

from sheetrecords.exceptions import TranslationError
from sheetrecords.spreadsheet.columns import ColumnInfo

BRACKET_RE = re.compile(r"\[([^\]]+)\]")


class BracketTranslator:
    """Rewrites ``[Header]`` tokens into positional codes."""

    def __init__(self, columns: Optional[ColumnInfo]) -> None:
        self.columns = columns

    def translate(self, query: str) -> str:
        """Translate ``query``, leaving everything outside brackets untouched.

        Raises:
            TranslationError: If no column metadata is available or a
                bracketed name matches no header
        """
        if self.columns is None or self.columns.is_empty:
            raise TranslationError("Cannot translate query: column metadata unavailable")

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            code = self.columns.header_to_code.get(name)
            if code is None:
                raise TranslationError(
                    f"Unknown column [{name}] in query; known headers: {self.columns.headers}"
                )
            return code

        return BRACKET_RE.sub(substitute, query)
