"""
Query response parser.

Turns the raw envelope returned by the read path into an ordered list of
records (header → value dictionaries). Cell values are normalized per column
type:

- date / datetime cells arrive as ``"Date(year, month0, day[, h, m, s, ms])"``
  with a zero-based month and become ``datetime.datetime`` values
- timeofday cells arrive as ``[h, m, s(, ms)]`` and become ``"HH:MM:SS"``
- every other type passes through unchanged

A cell whose encoding is not recognized falls back to its formatted display
string (or the raw value) instead of failing the whole response.
"""

import datetime as _dt
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sheetrecords.envelope import STATUS_WARNING, unwrap_envelope
from sheetrecords.exceptions import ParseError
from sheetrecords.spreadsheet.columns import ColumnInfo, TypeTag

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

_DATE_RE = re.compile(r"^\s*Date\(\s*(-?\d+(?:\s*,\s*-?\d+){2,6})\s*\)\s*$")


@dataclass
class ParsedResponse:
    """Decoded read-path response.

    Attributes:
        records: One record per returned row, in response order
        warnings: Warning entries reported by the query service
    """
    records: List[Record] = field(default_factory=list)
    warnings: List[Any] = field(default_factory=list)


class ResponseParser:
    """Decodes envelopes into records.

    Attributes:
        columns: Cached header snapshot used to name unlabeled columns; may be
            None, in which case unlabeled columns are omitted from records
    """

    def __init__(self, columns: Optional[ColumnInfo] = None) -> None:
        self.columns = columns

    def parse(self, text: str) -> ParsedResponse:
        """Decode a raw envelope.

        Raises:
            ParseError: If the framing or payload is malformed, or the service
                reported an error
        """
        payload = unwrap_envelope(text)

        warnings = list(payload.get("warnings") or [])
        if payload.get("status") == STATUS_WARNING:
            logger.warning("Query service returned warnings: %s", warnings)

        table = payload.get("table")
        if not table:
            return ParsedResponse(warnings=warnings)
        if not isinstance(table, dict):
            raise ParseError("Envelope table is not an object")

        cols = table.get("cols") or []
        rows = table.get("rows") or []
        if not cols or not rows:
            return ParsedResponse(warnings=warnings)

        keys = [self._key_for(col) for col in cols]
        types = [TypeTag.parse(col.get("type")) if isinstance(col, dict) else TypeTag.UNKNOWN
                 for col in cols]

        records = []
        for row in rows:
            cells = row.get("c") if isinstance(row, dict) else None
            cells = cells or []
            record: Record = {}
            for i, key in enumerate(keys):
                if key is None:
                    continue
                cell = cells[i] if i < len(cells) else None
                record[key] = decode_cell(cell, types[i])
            records.append(record)

        return ParsedResponse(records=records, warnings=warnings)

    def _key_for(self, col: Any) -> Optional[str]:
        if not isinstance(col, dict):
            return None
        label = (col.get("label") or "").strip()
        if label:
            return label
        if self.columns is not None:
            return self.columns.code_to_header.get(col.get("id"))
        return None


def decode_cell(cell: Any, type_tag: TypeTag) -> Any:
    """Normalize one envelope cell (``{"v": ..., "f": ...}`` or null)."""
    if not isinstance(cell, dict):
        return None
    value = cell.get("v")
    if value is None:
        return None

    if type_tag in (TypeTag.DATE, TypeTag.DATETIME):
        parsed = parse_date_sentinel(value)
        if parsed is None:
            logger.debug("Unrecognized date cell %r; using display value", value)
            return cell.get("f", value)
        return parsed

    if type_tag == TypeTag.TIMEOFDAY:
        rendered = format_timeofday(value)
        if rendered is None:
            logger.debug("Unrecognized timeofday cell %r; using display value", value)
            return cell.get("f", value)
        return rendered

    return value


def parse_date_sentinel(value: Any) -> Optional[_dt.datetime]:
    """Parse ``"Date(2024,0,15,13,45,0,0)"`` into a datetime (month is zero-based).

    Returns:
        The datetime, or None if the value is not a valid sentinel
    """
    if not isinstance(value, str):
        return None
    match = _DATE_RE.match(value)
    if not match:
        return None

    parts = [int(p) for p in match.group(1).split(",")]
    year, month, day = parts[:3]
    hour, minute, second, millis = (parts[3:] + [0, 0, 0, 0])[:4]
    try:
        return _dt.datetime(year, month + 1, day, hour, minute, second, millis * 1000)
    except ValueError:
        return None


def format_timeofday(value: Any) -> Optional[str]:
    """Render ``[h, m, s(, ms)]`` as ``"HH:MM:SS"``; milliseconds are dropped."""
    if not isinstance(value, (list, tuple)) or len(value) not in (3, 4):
        return None
    try:
        hour, minute, second = (int(v) for v in value[:3])
    except (TypeError, ValueError):
        return None
    return f"{hour:02d}:{minute:02d}:{second:02d}"
