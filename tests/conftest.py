"""
Pytest configuration and fixtures for ETL tests.

This file is automatically discovered by pytest and provides
shared fixtures and configuration for all test modules.
"""

import csv
from datetime import date, time

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from retail_sales.models import SalesRecord
from retail_sales.utils.db_urls import DatabaseTarget


@pytest.fixture
def raw_row():
    """
    Factory for one raw (all-text) sales row as found in the source CSV.
    Keyword arguments override individual fields.
    """
    def make(**overrides):
        row = {
            "invoice_id": "765-26-6951",
            "branch": "WALM003",
            "city": "San Antonio",
            "customer_type": "Normal",
            "gender": "Male",
            "product_line": "Health and beauty",
            "category": "Health and beauty",
            "unit_price": "$74.69",
            "quantity": "7",
            "tax": "26.14",
            "date": "05/01/19",
            "time": "13:08:00",
            "payment_method": "Ewallet",
            "cogs": "522.83",
            "gross_margin_pct": "4.76",
            "gross_income": "26.14",
            "rating": "9.1",
            "profit_margin": "0.48",
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def write_csv(tmp_path):
    """Write rows (lists) to a CSV file under tmp_path and return its path."""
    def write(rows, name="sales.csv"):
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
        return path

    return write


@pytest.fixture
def sales_record():
    """Factory for an already-cleaned SalesRecord."""
    def make(**overrides):
        values = dict(
            invoice_id="750-67-8428",
            branch="WALM001",
            city="Yangon",
            category="Health and beauty",
            unit_price=10.0,
            quantity=3,
            date=date(2019, 1, 5),
            time=time(13, 8),
            payment_method="Ewallet",
            rating=9.1,
            profit_margin=0.48,
        )
        values.update(overrides)
        return SalesRecord(**values)

    return make


@pytest.fixture
def sqlite_target(tmp_path):
    """File-backed SQLite database standing in for MySQL/PostgreSQL."""
    return DatabaseTarget(name="sqlite", dialect="sqlite", database=str(tmp_path / "retail.db"))


# Add pytest CLI options
def pytest_addoption(parser):
    """Add custom pytest options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires live MySQL/PostgreSQL, see MYSQL_* / POSTGRES_* env vars)"
    )


def pytest_collection_modifyitems(config, items):
    """Mark integration tests for conditional execution."""
    if config.getoption("--integration"):
        # Run all tests
        return

    # Skip integration tests if flag not provided
    skip_integration = pytest.mark.skip(reason="need --integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
