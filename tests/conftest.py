"""Shared pytest configuration and fixtures for sheetrecords tests."""

import pytest

from sheetrecords.config import SheetConfig
from sheetrecords.executor.locking import ThreadLock
from sheetrecords.table import SheetTable
from tests.helpers.envelopes import GridBackedTransport
from tests.helpers.fake_grid import FakeGrid
from tests.helpers.sample_data import EMPLOYEE_HEADERS, EMPLOYEE_ROWS, EMPLOYEE_TYPES


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Include tests marked @pytest.mark.slow (e.g. live Google Sheets)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (skipped unless --run-slow)")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip = pytest.mark.skip(reason="slow test; pass --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def employees_grid() -> FakeGrid:
    return FakeGrid(EMPLOYEE_HEADERS, EMPLOYEE_ROWS)


@pytest.fixture
def employees_transport(employees_grid) -> GridBackedTransport:
    return GridBackedTransport(employees_grid, EMPLOYEE_TYPES)


@pytest.fixture
def employees(employees_grid, employees_transport) -> SheetTable:
    return SheetTable(employees_grid, employees_transport, SheetConfig(lock_wait_ms=1000),
                      lock=ThreadLock())
