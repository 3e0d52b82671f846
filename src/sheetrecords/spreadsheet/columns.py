"""
Column metadata cache.

Every other component addresses columns through the mapping established here:
header name ↔ positional code ↔ 0-indexed position, plus the value type the
query service reports for each column and which column holds the record
identifier. The mapping is fetched with a single structural query, kept until
explicitly invalidated, and always replaced as a whole.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sheetrecords.envelope import unwrap_envelope
from sheetrecords.exceptions import ParseError, SheetRecordsError
from sheetrecords.result import Result

logger = logging.getLogger(__name__)

# Structural query: header row plus at most one data row, enough for the
# service to report labels and inferred types.
METADATA_QUERY = "select * limit 1"


class TypeTag(str, Enum):
    """Value types reported by the query service for a column."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMEOFDAY = "timeofday"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "TypeTag":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ColumnInfo:
    """Snapshot of the header row.

    Attributes:
        headers: Header names in sheet column order
        header_to_code: Header name → positional code (e.g. "Age" → "B")
        code_to_header: Inverse of header_to_code
        header_to_index: Header name → 0-indexed column position
        column_type: Header name or positional code → TypeTag
        id_field_code: Positional code of the identifier column, or None when
            the configured identifier header is absent
    """
    headers: List[str] = field(default_factory=list)
    header_to_code: Dict[str, str] = field(default_factory=dict)
    code_to_header: Dict[str, str] = field(default_factory=dict)
    header_to_index: Dict[str, int] = field(default_factory=dict)
    column_type: Dict[str, TypeTag] = field(default_factory=dict)
    id_field_code: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.headers

    @property
    def id_field(self) -> Optional[str]:
        """Header name of the identifier column, or None."""
        if self.id_field_code is None:
            return None
        return self.code_to_header.get(self.id_field_code)

    def type_of(self, key: str) -> TypeTag:
        """Type of a column addressed by header name or positional code."""
        return self.column_type.get(key, TypeTag.UNKNOWN)

    @classmethod
    def from_columns(cls, cols: List[Dict[str, Any]], id_field: str) -> "ColumnInfo":
        """Build a snapshot from the ``table.cols`` descriptors of an envelope.

        Columns without a label are named after their positional code so that
        every column stays addressable.

        Raises:
            ParseError: If a descriptor has no positional code or a header name
                occurs twice
        """
        info = cls()
        for i, col in enumerate(cols):
            code = col.get("id") if isinstance(col, dict) else None
            if not code:
                raise ParseError(f"Column descriptor {i} has no positional code")
            label = (col.get("label") or "").strip() or code
            if label in info.header_to_code:
                raise ParseError(f"Duplicate header name {label!r} at column {code}")

            type_tag = TypeTag.parse(col.get("type"))
            info.headers.append(label)
            info.header_to_code[label] = code
            info.code_to_header[code] = label
            info.header_to_index[label] = i
            info.column_type[label] = type_tag
            info.column_type[code] = type_tag

            if label == id_field:
                info.id_field_code = code

        return info


class MetadataCache:
    """Fetches and memoizes ColumnInfo for one sheet.

    The cache has no automatic invalidation: writes never change it. Call
    ``invalidate()`` (or ``refresh()``) after the header row changes.

    Attributes:
        transport: Read-path collaborator used for the structural query
        id_field: Configured identifier header name
    """

    def __init__(self, transport, id_field: str = "id") -> None:
        self.transport = transport
        self.id_field = id_field
        self._info: Optional[ColumnInfo] = None

    @property
    def info(self) -> Optional[ColumnInfo]:
        """The current snapshot, or None when nothing has been fetched."""
        return self._info

    def invalidate(self) -> None:
        self._info = None

    def fetch(self) -> Result:
        """Run the structural query and replace the cached snapshot.

        On failure the cache is left unset and the Result carries the error.
        A sheet with no columns yields a valid, empty ColumnInfo.
        """
        self._info = None
        try:
            envelope = self.transport.fetch(METADATA_QUERY)
            info = ColumnInfo.from_columns(_envelope_columns(envelope), self.id_field)
        except SheetRecordsError as e:
            logger.warning("Column metadata fetch failed: %s", e)
            return Result.failure(e)

        if info.id_field_code is None and not info.is_empty:
            logger.warning(
                "Identifier header %r not found among %s; id-based operations are disabled",
                self.id_field, info.headers,
            )
        logger.debug("Fetched %d column(s): %s", len(info.headers), info.headers)
        self._info = info
        return Result.success(info)

    def get_or_fetch(self) -> Result:
        """Return the cached snapshot if populated and non-empty, else fetch."""
        if self._info is not None and not self._info.is_empty:
            return Result.success(self._info)
        return self.fetch()

    refresh = fetch


def _envelope_columns(envelope: str) -> List[Dict[str, Any]]:
    """Extract the column descriptors from a raw response envelope.

    Raises:
        ParseError: On framing or decoding failures, or an error status
    """
    payload = unwrap_envelope(envelope)
    table = payload.get("table") or {}
    if not isinstance(table, dict):
        raise ParseError("Envelope table is not an object")
    cols = table.get("cols") or []
    if not isinstance(cols, list):
        raise ParseError("Envelope table.cols is not a list")
    return cols
