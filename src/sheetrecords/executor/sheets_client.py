"""
Google Sheets API client wrapper.

This module provides a high-level interface to the Google Sheets API via gspread,
with error wrapping for the spreadsheet operations the write path needs.
"""

from typing import Any, Dict, List

import gspread
from gspread.exceptions import (
    APIError,
    NoValidUrlKeyFound,
    SpreadsheetNotFound,
    WorksheetNotFound,
)
from gspread.utils import DateTimeOption, ValueRenderOption

from sheetrecords.exceptions import ConfigurationError, SheetsAPIError
from sheetrecords.spreadsheet.model import column_letter


class SheetsClient:
    """
    A wrapper around gspread for Google Sheets API operations.

    This client wraps an authenticated gspread client, adding error handling
    and a clean interface for the cell operations performed by WorksheetGrid.

    Attributes:
        gc: The authenticated gspread client instance
    """

    def __init__(self, gc: gspread.Client) -> None:
        """
        Initialize the Sheets client with an authenticated gspread client.

        Args:
            gc: An authenticated gspread client, e.g. from ``gspread.service_account()``
                or ``gspread.oauth()``.
        """
        self.gc = gc

    def open_spreadsheet(self, locator: str) -> gspread.Spreadsheet:
        """
        Open a spreadsheet by key or URL.

        Args:
            locator: A spreadsheet key, or a full ``https://`` spreadsheet URL

        Returns:
            The opened Spreadsheet object

        Raises:
            ConfigurationError: If the spreadsheet does not exist or is not shared
            SheetsAPIError: If the API call fails
        """
        try:
            if locator.startswith("http"):
                return self.gc.open_by_url(locator)
            return self.gc.open_by_key(locator)
        except (SpreadsheetNotFound, NoValidUrlKeyFound) as e:
            raise ConfigurationError(f"Spreadsheet '{locator}' not found or not accessible") from e
        except APIError as e:
            raise SheetsAPIError(f"Failed to open spreadsheet '{locator}': {e}") from e

    def get_worksheet(self, spreadsheet: gspread.Spreadsheet, name=None) -> gspread.Worksheet:
        """
        Return the named worksheet, or the first one when ``name`` is None.

        Raises:
            ConfigurationError: If no worksheet has that title
            SheetsAPIError: If the API call fails
        """
        try:
            if name is None:
                return spreadsheet.sheet1
            return spreadsheet.worksheet(name)
        except WorksheetNotFound as e:
            raise ConfigurationError(f"Worksheet '{name}' not found in spreadsheet") from e
        except APIError as e:
            raise SheetsAPIError(f"Failed to open worksheet '{name}': {e}") from e

    def read_values(self, worksheet: gspread.Worksheet) -> List[List[Any]]:
        """
        Read every populated row of a worksheet as cell values.

        Numbers and booleans come back unformatted (``1000``, not ``"1,000"``);
        dates and times come back as their formatted strings.

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            return worksheet.get_all_values(
                value_render_option=ValueRenderOption.unformatted,
                date_time_render_option=DateTimeOption.formatted_string,
            )
        except APIError as e:
            raise SheetsAPIError(f"Failed to read values from '{worksheet.title}': {e}") from e

    def append_rows(self, worksheet: gspread.Worksheet, values: List[List[Any]]) -> None:
        """
        Append rows after the last populated row of a worksheet.

        Values are written as if typed by a user, so numbers and dates are parsed.

        Raises:
            SheetsAPIError: If the API call fails
        """
        if not values:
            return

        try:
            worksheet.append_rows(values, value_input_option="USER_ENTERED")
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to append {len(values)} row(s) to '{worksheet.title}': {e}"
            ) from e

    def batch_update_values(
        self,
        worksheet: gspread.Worksheet,
        updates: List[Dict[str, Any]]
    ) -> None:
        """
        Batch update multiple value ranges in a worksheet.

        Args:
            worksheet: The worksheet to write to
            updates: List of dictionaries with 'range' and 'values' keys where:
                - range: A1 notation range (e.g., "A1:C10")
                - values: 2D list of values to write

        Raises:
            SheetsAPIError: If the API call fails
        """
        if not updates:
            return

        try:
            worksheet.batch_update(updates, raw=False)
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to batch update {len(updates)} value ranges: {e}"
            ) from e

    def delete_rows(
        self,
        spreadsheet: gspread.Spreadsheet,
        worksheet: gspread.Worksheet,
        rows: List[int]
    ) -> None:
        """
        Delete physical rows in a single batch request.

        Requests are applied in the given order, so callers must list rows
        from the bottom up.

        Args:
            spreadsheet: The spreadsheet containing the worksheet
            worksheet: The worksheet to delete from
            rows: 1-indexed physical row numbers

        Raises:
            SheetsAPIError: If the API call fails
        """
        if not rows:
            return

        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": worksheet.id,
                        "dimension": "ROWS",
                        "startIndex": row - 1,
                        "endIndex": row,
                    }
                }
            }
            for row in rows
        ]
        try:
            spreadsheet.batch_update({"requests": requests})
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to delete {len(rows)} row(s) from '{worksheet.title}': {e}"
            ) from e

    def clear_rows(self, worksheet: gspread.Worksheet, start_row: int) -> None:
        """
        Blank every cell from ``start_row`` to the bottom of the worksheet.

        Raises:
            SheetsAPIError: If the API call fails
        """
        last_row = worksheet.row_count
        if last_row < start_row:
            return

        range_name = f"A{start_row}:{column_letter(max(worksheet.col_count, 1) - 1)}{last_row}"
        try:
            worksheet.batch_clear([range_name])
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to clear range '{range_name}' in '{worksheet.title}': {e}"
            ) from e
