"""
Pytest configuration and shared fixtures.

This file registers custom pytest markers and command-line options.
"""

import os
import tempfile
import pytest

from invoice_intake.services.normalizer import InvoiceNormalizer, NormalizerConfig
from invoice_intake.services.storage.invoices_sqlite import SQLiteInvoiceStore


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real extraction models"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real extraction model"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def db_path():
    """Create a temporary database file for testing"""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    # Cleanup
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
def sqlite_store(db_path):
    """Create a fresh SQLiteInvoiceStore for each test"""
    return SQLiteInvoiceStore(db_path)


@pytest.fixture
def normalizer():
    """Normalizer with a fixed clock so placeholders and fallbacks are deterministic"""
    from datetime import date

    return InvoiceNormalizer(
        NormalizerConfig(default_currency="EUR"),
        today=lambda: date(2025, 1, 15),
        clock=lambda: 1700000000.0,
    )
