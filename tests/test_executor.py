"""
Unit tests for the executor package.

Tests cover:
- SheetsClient: gspread wrapper calls and error wrapping
- WorksheetGrid: operation batching, retries, discard
- GvizTransport: request construction and failure classification
- ProcessLock / ThreadLock: acquisition bounds
- ConditionMatcher: row scanning with text comparison
- WriteExecutor: lock discipline, flush, discard on failure

All tests mock gspread and requests - no real API calls are made.
"""

import threading
from unittest.mock import Mock, call

import gspread
import pytest
import requests
from gspread.exceptions import APIError, SpreadsheetNotFound, WorksheetNotFound
from gspread.utils import DateTimeOption, ValueRenderOption

from sheetrecords.exceptions import (
    ConfigurationError,
    LockTimeoutError,
    NotFoundError,
    SheetsAPIError,
    TransportError,
    ValidationError,
)
from sheetrecords.executor.gviz import GvizTransport, token_provider_from_gspread
from sheetrecords.executor.locking import ProcessLock, ThreadLock, lock_path_for
from sheetrecords.executor.matcher import ConditionMatcher, as_text
from sheetrecords.executor.sheets_client import SheetsClient
from sheetrecords.executor.worksheet_grid import WorksheetGrid
from sheetrecords.executor.write_executor import WriteExecutor
from sheetrecords.spreadsheet.columns import ColumnInfo
from sheetrecords.spreadsheet.operations import AppendRows, ClearRows, DeleteRows, SetValues
from tests.helpers.envelopes import col
from tests.helpers.fake_grid import FakeGrid


def make_api_error(code: int = 429, message: str = "Quota exceeded") -> APIError:
    mock_response = Mock()
    mock_response.json.return_value = {
        "error": {
            "code": code,
            "message": message,
            "status": "RESOURCE_EXHAUSTED"
        }
    }
    return APIError(mock_response)


def make_worksheet(title: str = "Users", rows: int = 100, cols: int = 4) -> Mock:
    worksheet = Mock(spec=gspread.Worksheet)
    worksheet.title = title
    worksheet.id = 7
    worksheet.row_count = rows
    worksheet.col_count = cols
    return worksheet


class TestSheetsClient:
    """Test suite for SheetsClient wrapper."""

    def test_init_stores_gc(self):
        """The wrapper stores the provided gspread client."""
        mock_gc = Mock(spec=gspread.Client)
        client = SheetsClient(mock_gc)
        assert client.gc is mock_gc

    def test_open_spreadsheet_by_key(self):
        mock_gc = Mock(spec=gspread.Client)
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)
        mock_gc.open_by_key.return_value = mock_spreadsheet

        result = SheetsClient(mock_gc).open_spreadsheet("1AbC")

        mock_gc.open_by_key.assert_called_once_with("1AbC")
        assert result is mock_spreadsheet

    def test_open_spreadsheet_by_url(self):
        mock_gc = Mock(spec=gspread.Client)
        url = "https://docs.google.com/spreadsheets/d/1AbC/edit"

        SheetsClient(mock_gc).open_spreadsheet(url)

        mock_gc.open_by_url.assert_called_once_with(url)
        mock_gc.open_by_key.assert_not_called()

    def test_open_missing_spreadsheet_is_a_configuration_error(self):
        mock_gc = Mock(spec=gspread.Client)
        mock_gc.open_by_key.side_effect = SpreadsheetNotFound()

        with pytest.raises(ConfigurationError, match="1AbC"):
            SheetsClient(mock_gc).open_spreadsheet("1AbC")

    def test_open_spreadsheet_api_error(self):
        """Error wrapping: APIError is caught and re-raised as SheetsAPIError."""
        mock_gc = Mock(spec=gspread.Client)
        mock_gc.open_by_key.side_effect = make_api_error()

        with pytest.raises(SheetsAPIError) as exc_info:
            SheetsClient(mock_gc).open_spreadsheet("1AbC")

        assert "Failed to open spreadsheet" in str(exc_info.value)
        assert "Quota exceeded" in str(exc_info.value)

    def test_get_worksheet_defaults_to_first(self):
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)
        first = make_worksheet()
        mock_spreadsheet.sheet1 = first

        assert SheetsClient(Mock(spec=gspread.Client)).get_worksheet(mock_spreadsheet) is first
        mock_spreadsheet.worksheet.assert_not_called()

    def test_get_worksheet_by_name(self):
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)

        SheetsClient(Mock(spec=gspread.Client)).get_worksheet(mock_spreadsheet, "Users")

        mock_spreadsheet.worksheet.assert_called_once_with("Users")

    def test_missing_worksheet_is_a_configuration_error(self):
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)
        mock_spreadsheet.worksheet.side_effect = WorksheetNotFound("Users")

        with pytest.raises(ConfigurationError, match="Users"):
            SheetsClient(Mock(spec=gspread.Client)).get_worksheet(mock_spreadsheet, "Users")

    def test_read_values_requests_unformatted_numbers(self):
        worksheet = make_worksheet()
        worksheet.get_all_values.return_value = [["id"], ["e1"]]

        assert SheetsClient(Mock(spec=gspread.Client)).read_values(worksheet) == [["id"], ["e1"]]

        worksheet.get_all_values.assert_called_once_with(
            value_render_option=ValueRenderOption.unformatted,
            date_time_render_option=DateTimeOption.formatted_string,
        )

    def test_append_rows_uses_user_entered_values(self):
        worksheet = make_worksheet()

        SheetsClient(Mock(spec=gspread.Client)).append_rows(worksheet, [["e6", "Finn"]])

        worksheet.append_rows.assert_called_once_with([["e6", "Finn"]], value_input_option="USER_ENTERED")

    def test_append_nothing_is_a_no_op(self):
        worksheet = make_worksheet()
        SheetsClient(Mock(spec=gspread.Client)).append_rows(worksheet, [])
        worksheet.append_rows.assert_not_called()

    def test_append_rows_api_error(self):
        worksheet = make_worksheet()
        worksheet.append_rows.side_effect = make_api_error()

        with pytest.raises(SheetsAPIError, match="Failed to append 1 row"):
            SheetsClient(Mock(spec=gspread.Client)).append_rows(worksheet, [["e6"]])

    def test_batch_update_values(self):
        worksheet = make_worksheet()
        updates = [{"range": "B2", "values": [["Zed"]]}]

        SheetsClient(Mock(spec=gspread.Client)).batch_update_values(worksheet, updates)

        worksheet.batch_update.assert_called_once_with(updates, raw=False)

    def test_delete_rows_sends_one_batch_in_given_order(self):
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)
        worksheet = make_worksheet()

        SheetsClient(Mock(spec=gspread.Client)).delete_rows(mock_spreadsheet, worksheet, [7, 3])

        body = mock_spreadsheet.batch_update.call_args[0][0]
        ranges = [r["deleteDimension"]["range"] for r in body["requests"]]
        assert ranges == [
            {"sheetId": 7, "dimension": "ROWS", "startIndex": 6, "endIndex": 7},
            {"sheetId": 7, "dimension": "ROWS", "startIndex": 2, "endIndex": 3},
        ]

    def test_delete_rows_api_error(self):
        mock_spreadsheet = Mock(spec=gspread.Spreadsheet)
        mock_spreadsheet.batch_update.side_effect = make_api_error()

        with pytest.raises(SheetsAPIError, match="Failed to delete 1 row"):
            SheetsClient(Mock(spec=gspread.Client)).delete_rows(mock_spreadsheet, make_worksheet(), [2])

    def test_clear_rows_covers_rest_of_sheet(self):
        worksheet = make_worksheet(rows=50, cols=28)

        SheetsClient(Mock(spec=gspread.Client)).clear_rows(worksheet, 2)

        worksheet.batch_clear.assert_called_once_with(["A2:AB50"])

    def test_clear_rows_past_end_is_a_no_op(self):
        worksheet = make_worksheet(rows=1)
        SheetsClient(Mock(spec=gspread.Client)).clear_rows(worksheet, 2)
        worksheet.batch_clear.assert_not_called()


class TestWorksheetGrid:
    """Test suite for WorksheetGrid."""

    def make_grid(self, **kwargs):
        client = Mock(spec=SheetsClient)
        spreadsheet = Mock(spec=gspread.Spreadsheet)
        worksheet = make_worksheet()
        grid = WorksheetGrid(client, spreadsheet, worksheet, base_delay=0, **kwargs)
        return grid, client

    def test_read_data_rows_skips_header(self):
        grid, client = self.make_grid()
        client.read_values.return_value = [["id", "Name"], ["e1", "Alice"], ["e2", "Bob"]]

        assert grid.read_data_rows() == [["e1", "Alice"], ["e2", "Bob"]]

    def test_number_formats_do_not_affect_matching(self):
        # Cells displayed as "1,000" and "$10.00" are read as their values.
        worksheet = make_worksheet()
        worksheet.get_all_values.return_value = [["id", "Age"], ["e1", 1000], ["e2", 10.0]]
        client = SheetsClient(Mock(spec=gspread.Client))
        grid = WorksheetGrid(client, Mock(spec=gspread.Spreadsheet), worksheet, base_delay=0)
        columns = ColumnInfo.from_columns([col("A", "id"), col("B", "Age", "number")], "id")

        matcher = ConditionMatcher(grid, columns)

        assert matcher.match({"Age": 1000}) == [2]
        assert matcher.match({"Age": 10}) == [3]
        assert matcher.match({"Age": "10"}) == [3]

    def test_queue_does_not_touch_the_sheet(self):
        grid, client = self.make_grid()

        grid.queue(SetValues("B2", [["x"]]))

        assert len(grid.pending) == 1
        assert client.method_calls == []

    def test_flush_groups_consecutive_operations(self):
        grid, client = self.make_grid()
        grid.queue(SetValues("B2", [["x"]]))
        grid.queue(SetValues("C2", [[3]]))
        grid.queue(DeleteRows(5))
        grid.queue(DeleteRows(3))
        grid.queue(AppendRows([["e6"]]))
        grid.queue(AppendRows([["e7"], ["e8"]]))

        grid.flush()

        assert client.method_calls == [
            call.batch_update_values(grid.worksheet, [
                {"range": "B2", "values": [["x"]]},
                {"range": "C2", "values": [[3]]},
            ]),
            call.delete_rows(grid.spreadsheet, grid.worksheet, [5, 3]),
            call.append_rows(grid.worksheet, [["e6"], ["e7"], ["e8"]]),
        ]
        assert grid.pending == []

    def test_flush_clears_from_lowest_start_row(self):
        grid, client = self.make_grid()
        grid.queue(ClearRows(4))
        grid.queue(ClearRows(2))

        grid.flush()

        client.clear_rows.assert_called_once_with(grid.worksheet, 2)

    def test_value_writes_are_retried(self):
        grid, client = self.make_grid(max_retries=2)
        client.batch_update_values.side_effect = [SheetsAPIError("busy"), None]
        grid.queue(SetValues("B2", [["x"]]))

        grid.flush()

        assert client.batch_update_values.call_count == 2

    def test_retries_are_bounded(self):
        grid, client = self.make_grid(max_retries=2)
        client.batch_update_values.side_effect = SheetsAPIError("busy")
        grid.queue(SetValues("B2", [["x"]]))

        with pytest.raises(SheetsAPIError, match="after 3 attempts"):
            grid.flush()
        assert client.batch_update_values.call_count == 3

    @pytest.mark.parametrize("op, method", [
        (AppendRows([["e6"]]), "append_rows"),
        (DeleteRows(2), "delete_rows"),
    ])
    def test_non_idempotent_operations_are_sent_once(self, op, method):
        grid, client = self.make_grid(max_retries=3)
        getattr(client, method).side_effect = SheetsAPIError("busy")
        grid.queue(op)

        with pytest.raises(SheetsAPIError):
            grid.flush()
        assert getattr(client, method).call_count == 1

    def test_failed_flush_is_not_replayed(self):
        grid, client = self.make_grid()
        client.append_rows.side_effect = SheetsAPIError("down")
        grid.queue(AppendRows([["e6"]]))

        with pytest.raises(SheetsAPIError):
            grid.flush()
        grid.flush()

        assert client.append_rows.call_count == 1

    def test_discard(self):
        grid, client = self.make_grid()
        grid.queue(DeleteRows(2))

        grid.discard()
        grid.flush()

        assert grid.pending == []
        client.delete_rows.assert_not_called()

    def test_unknown_operation_rejected(self):
        grid, _ = self.make_grid()
        grid.queue("not an op")

        with pytest.raises(TypeError):
            grid.flush()


class TestGvizTransport:
    """Test suite for GvizTransport."""

    def make_transport(self, response=None, error=None):
        session = Mock(spec=requests.Session)
        if error is not None:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        transport = GvizTransport("1AbC", "Users", lambda: "tok", session=session, timeout=5)
        return transport, session

    def test_fetch_sends_query_parameters(self):
        response = Mock(status_code=200, text="setResponse({})")
        transport, session = self.make_transport(response)

        assert transport.fetch("select A") == "setResponse({})"

        session.get.assert_called_once_with(
            "https://docs.google.com/spreadsheets/d/1AbC/gviz/tq",
            params={"sheet": "Users", "tq": "select A", "headers": 1},
            headers={"Authorization": "Bearer tok"},
            timeout=5,
        )

    def test_non_200_is_a_transport_error(self):
        transport, _ = self.make_transport(Mock(status_code=403, text="denied"))

        with pytest.raises(TransportError) as exc_info:
            transport.fetch("select A")
        assert exc_info.value.status_code == 403

    def test_connection_failure_is_a_transport_error(self):
        transport, _ = self.make_transport(error=requests.ConnectionError("refused"))

        with pytest.raises(TransportError, match="refused"):
            transport.fetch("select A")

    def test_token_provider_refreshes_invalid_credentials(self):
        credentials = Mock(valid=False, token="fresh")
        gc = Mock()
        gc.http_client.auth = credentials

        provide = token_provider_from_gspread(gc)

        assert provide() == "fresh"
        credentials.refresh.assert_called_once()

    def test_token_provider_reuses_valid_credentials(self):
        credentials = Mock(valid=True, token="cached")
        gc = Mock()
        gc.http_client.auth = credentials

        assert token_provider_from_gspread(gc)() == "cached"
        credentials.refresh.assert_not_called()


class TestLocks:
    """Test suite for write locks."""

    def test_lock_path_is_stable_per_worksheet(self, tmp_path):
        first = lock_path_for("1AbC", "Users", str(tmp_path))
        assert first == lock_path_for("1AbC", "Users", str(tmp_path))
        assert first != lock_path_for("1AbC", "Orders", str(tmp_path))
        assert first.parent == tmp_path

    def test_process_lock_times_out_while_held(self, tmp_path):
        path = tmp_path / "w.lock"
        holder = ProcessLock(path)
        waiter = ProcessLock(path, poll_interval=0.01)

        assert holder.acquire(timeout=1)
        try:
            assert waiter.acquire(timeout=0.05) is False
        finally:
            holder.release()

        assert waiter.acquire(timeout=1)
        waiter.release()

    def test_thread_lock_times_out_while_held(self):
        lock = ThreadLock()
        assert lock.acquire(timeout=1)

        result = []
        waiter = threading.Thread(target=lambda: result.append(lock.acquire(timeout=0.05)))
        waiter.start()
        waiter.join()
        lock.release()

        assert result == [False]


COLUMNS = ColumnInfo.from_columns(
    [col("A", "id"), col("B", "Name"), col("C", "Age", "number"), col("D", "Active", "boolean")],
    "id",
)


class TestConditionMatcher:
    """Test suite for ConditionMatcher."""

    @pytest.fixture
    def grid(self):
        return FakeGrid(["id", "Name", "Age", "Active"], [
            ["e1", "Alice", "30", "TRUE"],
            ["e2", "Bob", "10", "FALSE"],
            ["e3", "Bob", "10"],
            ["e4", "Dan", "", "TRUE"],
        ])

    def test_rows_are_physical_and_ascending(self, grid):
        assert ConditionMatcher(grid, COLUMNS).match({"Name": "Bob"}) == [3, 4]

    def test_values_compare_as_text(self, grid):
        matcher = ConditionMatcher(grid, COLUMNS)
        assert matcher.match({"Age": 10}) == [3, 4]
        assert matcher.match({"Age": 10.0}) == [3, 4]
        assert matcher.match({"Age": "10"}) == [3, 4]
        assert matcher.match({"Active": True}) == [2, 5]

    def test_short_row_matches_empty_value(self, grid):
        assert ConditionMatcher(grid, COLUMNS).match({"Active": None}) == [4]
        assert ConditionMatcher(grid, COLUMNS).match({"Age": ""}) == [5]

    def test_conjunction(self, grid):
        assert ConditionMatcher(grid, COLUMNS).match({"Name": "Bob", "Active": False}) == [3]

    def test_first_only(self, grid):
        assert ConditionMatcher(grid, COLUMNS).match({"Name": "Bob"}, first_only=True) == [3]

    def test_unknown_columns_are_dropped(self, grid):
        assert ConditionMatcher(grid, COLUMNS).match({"Name": "Alice", "Bogus": 1}) == [2]

    def test_no_usable_conditions_match_nothing(self, grid):
        matcher = ConditionMatcher(grid, COLUMNS)
        assert matcher.match({}) == []
        assert matcher.match({"Bogus": 1}) == []
        assert grid.reads == 0

    @pytest.mark.parametrize("columns", [None, ColumnInfo()])
    def test_unavailable_metadata_matches_nothing(self, grid, columns):
        assert ConditionMatcher(grid, columns).match({"Name": "Bob"}) == []

    def test_as_text(self):
        assert as_text(None) == ""
        assert as_text(False) == "FALSE"
        assert as_text(3.0) == "3"
        assert as_text(3.5) == "3.5"
        assert as_text("x") == "x"


class FakeLock:
    """Lock double recording acquire/release calls."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls = []

    def acquire(self, timeout: float) -> bool:
        self.calls.append(("acquire", timeout))
        return self.available

    def release(self) -> None:
        self.calls.append(("release",))


class TestWriteExecutor:
    """Test suite for WriteExecutor."""

    def test_success_flushes_then_releases(self):
        grid, lock = FakeGrid(["id"]), FakeLock()
        events = []
        grid.on_flush = lambda ops: events.append(("flush", len(ops)))

        def action():
            grid.queue(AppendRows([["e1"]]))
            return 1

        result = WriteExecutor(grid, lock, lock_wait_ms=2500).execute(action)

        assert result.ok and result.value == 1
        assert events == [("flush", 1)]
        assert lock.calls == [("acquire", 2.5), ("release",)]
        assert grid.rows == [["id"], ["e1"]]

    def test_lock_timeout(self):
        grid, lock = FakeGrid(["id"]), FakeLock(available=False)
        action = Mock()

        result = WriteExecutor(grid, lock, lock_wait_ms=10).execute(action, "create")

        assert result.kind == "LockTimeoutError"
        assert isinstance(result.error, LockTimeoutError)
        action.assert_not_called()
        assert lock.calls == [("acquire", 0.01)]

    @pytest.mark.parametrize("error, kind", [
        (NotFoundError("none"), "NotFoundError"),
        (ValidationError("bad"), "ValidationError"),
        (RuntimeError("boom"), "RuntimeError"),
    ])
    def test_failed_action_applies_nothing(self, error, kind):
        grid, lock = FakeGrid(["id"]), FakeLock()

        def action():
            grid.queue(AppendRows([["e1"]]))
            raise error

        result = WriteExecutor(grid, lock).execute(action)

        assert result.kind == kind
        assert grid.pending == []
        assert grid.flushes == 0
        assert grid.rows == [["id"]]
        assert lock.calls[-1] == ("release",)

    def test_flush_failure_is_reported(self):
        grid, lock = FakeGrid(["id"]), FakeLock()
        grid.flush_error = SheetsAPIError("quota")

        result = WriteExecutor(grid, lock).execute(lambda: grid.queue(DeleteRows(2)))

        assert result.kind == "SheetsAPIError"
        assert lock.calls[-1] == ("release",)
