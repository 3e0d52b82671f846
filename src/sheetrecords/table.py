"""
Record-oriented access to a worksheet.

SheetTable exposes a sheet whose first row holds column headers as a CRUD and
query interface over records (header → value dictionaries):

- reads go through the query endpoint: the structured QueryBuilder or the
  bracketed-query translator compiles the request, and the ResponseParser
  turns the envelope back into typed records
- writes go through the WriteExecutor: each operation locates its rows with
  the ConditionMatcher and queues cell mutations under the write lock

No error crosses this surface except ConfigurationError at construction.
Every operation reports failure through its return value (False, 0 or None)
and logs the reason.

Usage:
    >>> import gspread
    >>> from sheetrecords import open_table
    >>> users = open_table(gspread.service_account(), storeLocator="1AbC...", sheetName="Users")
    >>> users.create({"id": "u1", "Name": "Ada", "Age": 36})
    True
    >>> users.find_many({"where": {"Age": 36}, "orderBy": [("Name", "ASC")]})
    [{'id': 'u1', 'Name': 'Ada', 'Age': 36.0}]
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import gspread
import pandas as pd

from sheetrecords.config import SheetConfig
from sheetrecords.exceptions import (
    ConfigurationError,
    NotFoundError,
    SheetRecordsError,
    SheetsAPIError,
    ValidationError,
)
from sheetrecords.executor.gviz import GvizTransport, token_provider_from_gspread
from sheetrecords.executor.locking import ProcessLock, ThreadLock, lock_path_for
from sheetrecords.executor.matcher import ConditionMatcher, as_text
from sheetrecords.executor.sheets_client import SheetsClient
from sheetrecords.executor.worksheet_grid import WorksheetGrid
from sheetrecords.executor.write_executor import WriteExecutor
from sheetrecords.query.brackets import BracketTranslator
from sheetrecords.query.builder import QueryBuilder, QueryDescriptor
from sheetrecords.query.parser import Record, ResponseParser
from sheetrecords.result import Result
from sheetrecords.spreadsheet.columns import ColumnInfo, MetadataCache
from sheetrecords.spreadsheet.model import Range, to_cell_value
from sheetrecords.spreadsheet.operations import AppendRows, ClearRows, DeleteRows, SetValues
from sheetrecords.utils.frames import records_to_frame

logger = logging.getLogger(__name__)

DescriptorLike = Union[QueryDescriptor, Mapping[str, Any], None]


class SheetTable:
    """CRUD and query operations over the records of one worksheet.

    Attributes:
        grid: Write-path collaborator (cell reads and queued mutations)
        transport: Read-path collaborator (query endpoint)
        config: Table options
        cache: Column metadata cache
        writer: Locked write executor
    """

    def __init__(self, grid, transport, config: Optional[SheetConfig] = None, lock=None) -> None:
        """Assemble a table from its collaborators.

        Args:
            grid: Grid implementation, e.g. WorksheetGrid
            transport: Transport implementation, e.g. GvizTransport
            config: Options (identifier header, lock wait); defaults apply if None
            lock: Lock shared by every writer of the worksheet; an in-process
                ThreadLock is used if None

        Raises:
            ConfigurationError: If a collaborator is missing
        """
        if grid is None or transport is None:
            raise ConfigurationError("SheetTable needs both a grid and a transport")

        self.config = config or SheetConfig()
        self.grid = grid
        self.transport = transport
        self.cache = MetadataCache(transport, id_field=self.config.id_field)
        self.writer = WriteExecutor(grid, lock or ThreadLock(), self.config.lock_wait_ms)

    # -- metadata ---------------------------------------------------------------

    @property
    def columns(self) -> Optional[ColumnInfo]:
        """The cached header snapshot, or None if not fetched (or failed)."""
        return self.cache.info

    def refresh(self) -> bool:
        """Re-fetch column metadata; call after the header row changes."""
        return self.cache.refresh().ok

    def invalidate(self) -> None:
        """Drop cached column metadata; the next operation re-fetches it."""
        self.cache.invalidate()

    def _columns(self) -> Optional[ColumnInfo]:
        return self.cache.get_or_fetch().unwrap_or(None)

    # -- reads ------------------------------------------------------------------

    def find_by_id(self, id_value: Any) -> Optional[Record]:
        """Return the record whose identifier equals ``id_value``, or None."""
        try:
            columns = self._require_id_column(id_value)
        except ValidationError as e:
            logger.warning("find_by_id: %s", e)
            return None
        return self._find_first({columns.id_field: id_value}, "find_by_id")

    def find(self, conditions: Mapping[str, Any]) -> Optional[Record]:
        """Return the first record matching every condition, or None.

        Unlike find_many and the mutations, which drop unknown header names
        with a warning, any unknown name in ``conditions`` makes the lookup
        return None.
        """
        try:
            self._require_filter_columns(conditions)
        except ValidationError as e:
            logger.warning("find: %s", e)
            return None
        return self._find_first(conditions, "find")

    def find_many(self, descriptor: DescriptorLike = None) -> Optional[List[Record]]:
        """Run a structured query.

        Args:
            descriptor: QueryDescriptor, or a mapping with ``select``, ``where``,
                ``orderBy``, ``limit`` and ``offset`` keys; None reads everything

        Returns:
            Matching records in result order, or None if the read failed
        """
        try:
            descriptor = _as_descriptor(descriptor)
        except ValidationError as e:
            logger.warning("find_many: %s", e)
            return None
        tq = QueryBuilder(self._columns()).build(descriptor)
        return self._read(tq).unwrap_or(None)

    def get_all(self) -> List[Record]:
        """Return every record; an empty list if the read failed."""
        return self.find_many() or []

    def query(self, text: str) -> Optional[List[Record]]:
        """Run a free-form query whose column references are ``[Header]`` tokens.

        Returns:
            Matching records, or None if translation or the read failed
        """
        try:
            tq = BracketTranslator(self._columns()).translate(text)
        except ValidationError as e:
            logger.warning("query: %s", e)
            return None
        return self._read(tq).unwrap_or(None)

    def to_frame(self, records: Optional[Sequence[Record]] = None) -> pd.DataFrame:
        """Return ``records`` (default: every record) as a DataFrame in header order."""
        if records is None:
            records = self.get_all()
        columns = self.columns
        return records_to_frame(records, columns.headers if columns else None)

    def _find_first(self, conditions: Mapping[str, Any], operation: str) -> Optional[Record]:
        tq = QueryBuilder(self.columns).build(QueryDescriptor(where=dict(conditions), limit=1))
        records = self._read(tq).unwrap_or(None)
        if not records:
            if records is not None:
                logger.debug("%s: no record matches %s", operation, dict(conditions))
            return None
        return records[0]

    def _read(self, tq: str) -> Result:
        try:
            text = self.transport.fetch(tq)
            parsed = ResponseParser(self.cache.info).parse(text)
        except SheetRecordsError as e:
            logger.warning("Query %r failed: %s", tq, e)
            return Result.failure(e)
        return Result.success(parsed.records)

    # -- creates ----------------------------------------------------------------

    def create(self, record: Mapping[str, Any]) -> bool:
        """Append one record. Returns True if it was written."""
        return self._insert([record], "create").ok

    def create_many(self, records: Sequence[Mapping[str, Any]]) -> int:
        """Append several records in one locked write.

        Every record is validated before anything is written; one invalid
        record fails the whole batch.

        Returns:
            Number of records written (0 on failure)
        """
        return self._insert(list(records or []), "create_many").unwrap_or(0)

    def _insert(self, records: List[Mapping[str, Any]], operation: str) -> Result:
        try:
            columns = self._require_columns()
            rows = self._rows_for_insert(records, columns)
        except ValidationError as e:
            logger.warning("%s: %s", operation, e)
            return Result.failure(e)

        def action() -> int:
            if columns.id_field is not None:
                index = columns.header_to_index[columns.id_field]
                existing = {as_text(row[index]) for row in self.grid.read_data_rows()
                            if index < len(row)}
                taken = [row[index] for row in rows if as_text(row[index]) in existing]
                if taken:
                    raise ValidationError(f"Identifier(s) already exist: {taken}")
            self.grid.queue(AppendRows(rows))
            return len(rows)

        result = self.writer.execute(action, operation)
        if result.ok:
            logger.info("%s: appended %d row(s)", operation, result.value)
        return result

    def _rows_for_insert(self, records: List[Mapping[str, Any]],
                         columns: ColumnInfo) -> List[List[Any]]:
        if not records:
            raise ValidationError("No records given")

        rows = []
        seen_ids = set()
        for n, record in enumerate(records):
            if not isinstance(record, Mapping) or not record:
                raise ValidationError(f"Record {n} is empty or not a mapping")
            known = _known_fields(record, columns, f"record {n}")
            if not known:
                raise ValidationError(f"Record {n} has no known columns: {list(record)}")

            if columns.id_field is not None:
                id_text = as_text(known.get(columns.id_field)).strip()
                if not id_text:
                    raise ValidationError(f"Record {n} has no '{columns.id_field}' value")
                if id_text in seen_ids:
                    raise ValidationError(f"Identifier {id_text!r} repeats within the batch")
                seen_ids.add(id_text)

            rows.append([to_cell_value(known.get(h)) for h in columns.headers])
        return rows

    # -- updates ----------------------------------------------------------------

    def update_by_id(self, id_value: Any, fields: Mapping[str, Any]) -> bool:
        """Update the record with identifier ``id_value``.

        The identifier itself is never changed; it is removed from ``fields``.
        """
        try:
            columns = self._require_id_column(id_value)
        except ValidationError as e:
            logger.warning("update_by_id: %s", e)
            return False
        return self._update({columns.id_field: id_value}, fields, True, "update_by_id").ok

    def update(self, conditions: Mapping[str, Any], fields: Mapping[str, Any]) -> bool:
        """Update the first record matching ``conditions``."""
        return self._update(conditions, fields, True, "update").ok

    def update_many(self, conditions: Mapping[str, Any], fields: Mapping[str, Any]) -> int:
        """Update every record matching ``conditions``; returns the count."""
        return self._update(conditions, fields, False, "update_many").unwrap_or(0)

    def _update(self, conditions: Mapping[str, Any], fields: Mapping[str, Any],
                first_only: bool, operation: str) -> Result:
        try:
            columns = self._require_columns()
            if not conditions:
                raise ValidationError("Update conditions are empty")
            changes = self._fields_for_update(fields, columns)
        except ValidationError as e:
            logger.warning("%s: %s", operation, e)
            return Result.failure(e)

        def action() -> int:
            rows = self._matching_rows(columns, conditions, first_only)
            for row in rows:
                for name, value in changes.items():
                    cell = Range(row=row, col=columns.header_to_index[name])
                    self.grid.queue(SetValues(cell.to_a1(), [[to_cell_value(value)]]))
            return len(rows)

        result = self.writer.execute(action, operation)
        if result.ok:
            logger.info("%s: updated %d row(s)", operation, result.value)
        return result

    def _fields_for_update(self, fields: Mapping[str, Any], columns: ColumnInfo) -> Dict[str, Any]:
        if not isinstance(fields, Mapping) or not fields:
            raise ValidationError("Update payload is empty")
        changes = _known_fields(fields, columns, "update payload")
        if columns.id_field is not None and columns.id_field in changes:
            logger.warning("Ignoring identifier field %r in update payload", columns.id_field)
            del changes[columns.id_field]
        if not changes:
            raise ValidationError("Update payload has no updatable columns")
        return changes

    # -- deletes ----------------------------------------------------------------

    def delete_by_id(self, id_value: Any) -> bool:
        """Delete the record with identifier ``id_value``."""
        try:
            columns = self._require_id_column(id_value)
        except ValidationError as e:
            logger.warning("delete_by_id: %s", e)
            return False
        return self._delete({columns.id_field: id_value}, True, "delete_by_id").ok

    def delete(self, conditions: Mapping[str, Any]) -> bool:
        """Delete the first record matching ``conditions``."""
        return self._delete(conditions, True, "delete").ok

    def delete_many(self, conditions: Mapping[str, Any]) -> int:
        """Delete every record matching ``conditions``; empty conditions delete nothing."""
        return self._delete(conditions, False, "delete_many").unwrap_or(0)

    def _delete(self, conditions: Mapping[str, Any], first_only: bool, operation: str) -> Result:
        try:
            columns = self._require_columns()
            if not conditions:
                raise ValidationError("Delete conditions are empty")
        except ValidationError as e:
            logger.warning("%s: %s", operation, e)
            return Result.failure(e)

        def action() -> int:
            rows = self._matching_rows(columns, conditions, first_only)
            # Bottom-up, so each deletion leaves the remaining row numbers intact.
            for row in sorted(rows, reverse=True):
                self.grid.queue(DeleteRows(row))
            return len(rows)

        result = self.writer.execute(action, operation)
        if result.ok:
            logger.info("%s: deleted %d row(s)", operation, result.value)
        return result

    def clear_data(self) -> bool:
        """Blank every data row, keeping the header row."""
        def action() -> bool:
            self.grid.queue(ClearRows(self.grid.header_row + 1))
            return True

        result = self.writer.execute(action, "clear_data")
        if result.ok:
            logger.info("clear_data: cleared all data rows")
        return result.ok

    # -- helpers ----------------------------------------------------------------

    def _matching_rows(self, columns: ColumnInfo, conditions: Mapping[str, Any],
                       first_only: bool) -> List[int]:
        rows = ConditionMatcher(self.grid, columns).match(conditions, first_only=first_only)
        if not rows:
            raise NotFoundError(f"No row matches {dict(conditions)}")
        return rows

    def _require_columns(self) -> ColumnInfo:
        columns = self._columns()
        if columns is None or columns.is_empty:
            raise ValidationError("Column metadata unavailable")
        return columns

    def _require_id_column(self, id_value: Any) -> ColumnInfo:
        if id_value is None or not as_text(id_value).strip():
            raise ValidationError("Identifier value is empty")
        columns = self._require_columns()
        if columns.id_field is None:
            raise ValidationError(f"Identifier column '{self.config.id_field}' not found")
        return columns

    def _require_filter_columns(self, conditions: Mapping[str, Any]) -> ColumnInfo:
        if not isinstance(conditions, Mapping) or not conditions:
            raise ValidationError("Conditions are empty")
        columns = self._require_columns()
        unknown = [name for name in conditions if name not in columns.header_to_code]
        if unknown:
            raise ValidationError(f"Unknown condition columns: {unknown}")
        return columns


def _known_fields(values: Mapping[str, Any], columns: ColumnInfo, what: str) -> Dict[str, Any]:
    known = {k: v for k, v in values.items() if k in columns.header_to_index}
    unknown = [k for k in values if k not in known]
    if unknown:
        logger.warning("Dropping unknown columns %s from %s", unknown, what)
    return known


def _as_descriptor(descriptor: DescriptorLike) -> QueryDescriptor:
    if descriptor is None:
        return QueryDescriptor()
    if isinstance(descriptor, QueryDescriptor):
        return descriptor
    if isinstance(descriptor, Mapping):
        return QueryDescriptor.from_mapping(descriptor)
    raise ValidationError(f"Unsupported query descriptor: {type(descriptor).__name__}")


def open_table(gc: gspread.Client, config: Optional[SheetConfig] = None,
               token_provider: Optional[Callable[[], str]] = None, **options: Any) -> SheetTable:
    """Open a worksheet as a SheetTable.

    Args:
        gc: An authenticated gspread client, e.g. from ``gspread.service_account()``
        config: Table options; alternatively pass them as keyword ``options``
            (``storeLocator``, ``sheetName``, ``idField``, ``lockWaitMs``, ...)
        token_provider: Callable returning an access token for the query
            endpoint; derived from ``gc``'s credentials if None

    Returns:
        A SheetTable whose writes are serialized across processes

    Raises:
        ConfigurationError: If the options are invalid, or the spreadsheet or
            worksheet cannot be opened
    """
    if config is None:
        config = SheetConfig.from_mapping(options)
    elif options:
        raise ConfigurationError("Pass either a SheetConfig or keyword options, not both")

    client = SheetsClient(gc)
    try:
        spreadsheet = client.open_spreadsheet(config.resolved_store_locator())
        worksheet = client.get_worksheet(spreadsheet, config.sheet_name)
    except SheetsAPIError as e:
        raise ConfigurationError(f"Could not open worksheet: {e}") from e

    grid = WorksheetGrid(client, spreadsheet, worksheet, header_row=config.header_row)
    transport = GvizTransport(
        spreadsheet.id,
        worksheet.title,
        token_provider or token_provider_from_gspread(gc),
        header_rows=config.header_row,
    )
    lock = ProcessLock(lock_path_for(spreadsheet.id, worksheet.title, config.lock_dir))
    return SheetTable(grid, transport, config, lock=lock)
