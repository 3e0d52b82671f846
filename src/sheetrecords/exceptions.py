"""
Exception classes for sheetrecords.

These exceptions classify the failures that can occur while mapping records
onto a sheet. Apart from ConfigurationError, none of them escape the public
SheetTable surface: they are raised inside components, converted into
Result values at component seams, and logged.
"""


class SheetRecordsError(Exception):
    """Base class for every error raised by sheetrecords."""
    pass


class ConfigurationError(SheetRecordsError):
    """Raised when a table cannot be constructed.

    Examples:
        - No spreadsheet locator given and no ambient store configured
        - The named worksheet does not exist in the spreadsheet
        - Unsupported option values (e.g. an offset header row)
    """
    pass


class ValidationError(SheetRecordsError):
    """Raised when caller input is rejected before any I/O happens.

    Examples:
        - Missing or empty identifier value
        - Empty condition or update payload
        - A record with no recognised header names
    """
    pass


class TranslationError(ValidationError):
    """Raised when a bracketed query cannot be translated to column codes."""
    pass


class NotFoundError(SheetRecordsError):
    """Raised when no row matches a condition or identifier.

    This is an expected outcome rather than an anomaly and is only logged at
    debug level.
    """
    pass


class TransportError(SheetRecordsError):
    """Raised when the read or write path cannot reach the backing store.

    Attributes:
        status_code: HTTP status returned by the query endpoint, if any
    """

    def __init__(self, message: str, status_code=None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SheetsAPIError(TransportError):
    """Raised when a Google Sheets API call fails.

    This error wraps exceptions from the Google Sheets API (via gspread) and
    provides context about which operation failed. Common causes include:
        - Authentication failures
        - Rate limiting (HTTP 429)
        - Invalid spreadsheet IDs or permission errors
    """
    pass


class ParseError(SheetRecordsError):
    """Raised when a query response envelope cannot be decoded.

    Attributes:
        errors: Error entries reported by the query service, if any
    """

    def __init__(self, message: str, errors=None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class LockTimeoutError(SheetRecordsError):
    """Raised when the write lock is not acquired within the configured wait."""
    pass
