"""
Table configuration.

Options may be given as keyword arguments to SheetConfig or as a mapping
using either the field names or their camelCase spellings:

    SheetConfig.from_mapping({"storeLocator": "1AbC...", "idField": "email"})

When no store locator is given, the ambient store named by the
``SHEETRECORDS_STORE`` environment variable is used.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from sheetrecords.exceptions import ConfigurationError

STORE_ENV_VAR = "SHEETRECORDS_STORE"

_CAMEL_CASE = {
    "storeLocator": "store_locator",
    "sheetName": "sheet_name",
    "idField": "id_field",
    "headerRow": "header_row",
    "lockWaitMs": "lock_wait_ms",
    "lockDir": "lock_dir",
}


@dataclass(frozen=True)
class SheetConfig:
    """Options for opening a SheetTable.

    Attributes:
        store_locator: Spreadsheet key or URL (defaults to $SHEETRECORDS_STORE)
        sheet_name: Worksheet title; None selects the first worksheet
        id_field: Header of the identifier column
        header_row: 1-indexed row holding the headers (only 1 is supported)
        lock_wait_ms: Bound on write-lock acquisition in milliseconds
        lock_dir: Directory for the cross-process lock file (default: temp dir)
    """
    store_locator: Optional[str] = None
    sheet_name: Optional[str] = None
    id_field: str = "id"
    header_row: int = 1
    lock_wait_ms: int = 30000
    lock_dir: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id_field, str) or not self.id_field.strip():
            raise ConfigurationError("id_field must be a non-empty string")
        if not isinstance(self.header_row, int) or self.header_row < 1:
            raise ConfigurationError("header_row must be a positive integer")
        if self.header_row != 1:
            # The query endpoint only understands a header block starting at row 1.
            raise ConfigurationError(
                f"header_row={self.header_row} is not supported; headers must be in row 1"
            )
        if not isinstance(self.lock_wait_ms, int) or self.lock_wait_ms <= 0:
            raise ConfigurationError("lock_wait_ms must be a positive integer")

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "SheetConfig":
        """Build a config from camelCase or snake_case option names.

        Raises:
            ConfigurationError: On unknown option names or invalid values
        """
        valid = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (options or {}).items():
            name = _CAMEL_CASE.get(key, key)
            if name not in valid:
                raise ConfigurationError(f"Unknown option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def resolved_store_locator(self) -> str:
        """The configured locator, falling back to the ambient store.

        Raises:
            ConfigurationError: If neither is set
        """
        locator = self.store_locator or os.environ.get(STORE_ENV_VAR)
        if not locator:
            raise ConfigurationError(
                f"No spreadsheet configured: pass store_locator or set ${STORE_ENV_VAR}"
            )
        return locator
