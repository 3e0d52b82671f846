"""
Structured query builder.

Compiles a QueryDescriptor into the query dialect spoken by the read path,
addressing columns by positional code. Clauses are emitted in a fixed order:

    select <codes> where <predicates> order by <codes> limit <n> offset <n>

Empty clauses are omitted. Header names that do not resolve are dropped from
their clause with a warning rather than failing the whole query, so a
descriptor always compiles; an unavailable column cache compiles to the empty
query, which selects every row and column.
"""

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sheetrecords.exceptions import ValidationError
from sheetrecords.spreadsheet.columns import ColumnInfo, TypeTag

logger = logging.getLogger(__name__)

ASC = "ASC"
DESC = "DESC"

OrderEntry = Union[str, Tuple[str, str]]


@dataclass
class QueryDescriptor:
    """Structured read request. Every field is optional.

    Attributes:
        select: Header names to project, in output order (None = all)
        where: Header → value equality conditions, combined with ``and``
        order_by: ``(header, "ASC" | "DESC")`` pairs or bare header names
        limit: Maximum number of rows (positive)
        offset: Number of leading rows to skip (non-negative)
    """
    select: Optional[List[str]] = None
    where: Optional[Dict[str, Any]] = None
    order_by: Optional[List[OrderEntry]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "QueryDescriptor":
        """Build a descriptor from a plain mapping.

        Accepts ``select``, ``where``, ``orderBy`` (or ``order_by``),
        ``limit`` and ``offset``.

        Raises:
            ValidationError: If the mapping contains unknown keys
        """
        known = {"select", "where", "orderBy", "order_by", "limit", "offset"}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown query descriptor keys: {sorted(unknown)}")

        order_by = data.get("orderBy", data.get("order_by"))
        select = data.get("select")
        return cls(
            select=[select] if isinstance(select, str) else select,
            where=data.get("where"),
            order_by=[order_by] if isinstance(order_by, str) else order_by,
            limit=data.get("limit"),
            offset=data.get("offset"),
        )


class QueryBuilder:
    """Compiles descriptors against a column snapshot.

    Attributes:
        columns: Current ColumnInfo, or None when the cache is unavailable
    """

    def __init__(self, columns: Optional[ColumnInfo]) -> None:
        self.columns = columns

    def build(self, descriptor: Optional[QueryDescriptor] = None) -> str:
        """Compile ``descriptor`` into query text.

        Returns:
            The query string; "" selects every row and column
        """
        if descriptor is None:
            descriptor = QueryDescriptor()

        if self.columns is None or self.columns.is_empty:
            if descriptor != QueryDescriptor():
                logger.warning("Column metadata unavailable; query degrades to select everything")
            return ""

        clauses = [
            self._select_clause(descriptor.select),
            self._where_clause(descriptor.where),
            self._order_clause(descriptor.order_by),
            self._limit_clause(descriptor.limit),
            self._offset_clause(descriptor.offset),
        ]
        return " ".join(c for c in clauses if c)

    def _resolve(self, name: Any, clause: str) -> Optional[str]:
        code = self.columns.header_to_code.get(name) if isinstance(name, str) else None
        if code is None:
            logger.warning("Dropping unknown column %r from %s clause", name, clause)
        return code

    def _select_clause(self, select: Optional[Sequence[str]]) -> str:
        if not select:
            return ""
        codes = [c for c in (self._resolve(name, "select") for name in select) if c]
        return f"select {', '.join(codes)}" if codes else ""

    def _where_clause(self, where: Optional[Mapping[str, Any]]) -> str:
        if not where:
            return ""
        predicates = []
        for name, value in where.items():
            code = self._resolve(name, "where")
            if code is None:
                continue
            if value is None:
                predicates.append(f"{code} is null")
            else:
                predicates.append(f"{code} = {literal(value, self.columns.type_of(code))}")
        return f"where {' and '.join(predicates)}" if predicates else ""

    def _order_clause(self, order_by: Optional[Sequence[OrderEntry]]) -> str:
        if not order_by:
            return ""
        terms = []
        for entry in order_by:
            if isinstance(entry, str):
                name, direction = entry, None
            else:
                name, direction = (list(entry) + [None])[:2]
            code = self._resolve(name, "order by")
            if code is None:
                continue
            direction = direction.upper() if isinstance(direction, str) else None
            terms.append(f"{code} {direction}" if direction in (ASC, DESC) else code)
        return f"order by {', '.join(terms)}" if terms else ""

    @staticmethod
    def _limit_clause(limit: Any) -> str:
        if _is_int(limit) and limit > 0:
            return f"limit {limit}"
        return ""

    @staticmethod
    def _offset_clause(offset: Any) -> str:
        if _is_int(offset) and offset >= 0:
            return f"offset {offset}"
        return ""


def literal(value: Any, type_tag: TypeTag) -> str:
    """Render ``value`` as a query literal for a column of type ``type_tag``.

    Number and boolean columns take bare literals; every other type takes a
    single-quoted string with embedded quotes escaped. A value that cannot be
    read as a number or boolean is quoted instead.
    """
    if type_tag == TypeTag.NUMBER:
        number = _as_number(value)
        if number is not None:
            return number
    elif type_tag == TypeTag.BOOLEAN:
        if isinstance(value, bool):
            return "true" if value else "false"
        if str(value).strip().lower() in ("true", "false"):
            return str(value).strip().lower()

    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def _as_number(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return str(int(value))
    try:
        number = float(value if isinstance(value, numbers.Real) else str(value).strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number):
        logger.warning("Value %r is not a finite number; quoting it", value)
        return None
    return str(int(number)) if number.is_integer() else repr(number)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
