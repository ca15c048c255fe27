"""
Unit tests for the database sink.

A file-backed SQLite database stands in for MySQL/PostgreSQL; the table
definition, best-effort inserts and error mapping are dialect independent.
"""

from datetime import date, time

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

from retail_sales.etl.enrich import enrich_sales
from retail_sales.etl.load_database import (
    build_sales_table,
    ensure_sales_table,
    load_sales_to_database,
)
from retail_sales.exceptions import SchemaConflictError, SinkConnectionError
from retail_sales.utils.db_urls import DatabaseTarget


EXPECTED_COLUMNS = [
    "invoice_id", "branch", "city", "customer_type", "gender", "product_line",
    "unit_price", "quantity", "tax", "total", "date", "time", "payment_method",
    "cogs", "gross_margin_pct", "gross_income", "rating", "category",
    "profit_margin",
]


@pytest.fixture
def records(sales_record):
    return enrich_sales([
        sales_record(invoice_id="A-1", unit_price=10.0, quantity=3),
        sales_record(invoice_id="A-2", unit_price=20.0, quantity=1, rating=None, time=None),
        sales_record(invoice_id="A-3", unit_price=5.5, quantity=2, branch="WALM002"),
    ])


def _count(target, table="retail_sales"):
    engine = create_engine(target.url())
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()


class TestSalesTable:

    def test_table_definition_matches_destination_schema(self):
        table = build_sales_table("retail_sales")
        assert [c.name for c in table.columns] == EXPECTED_COLUMNS
        assert table.c.invoice_id.type.length == 20
        assert table.c.branch.type.length == 10
        assert table.c.product_line.type.length == 100
        assert table.c.invoice_id.primary_key

    def test_ensure_creates_missing_table(self, sqlite_target):
        engine = create_engine(sqlite_target.url())

        ensure_sales_table(engine, "retail_sales")

        columns = [c["name"] for c in inspect(engine).get_columns("retail_sales")]
        assert columns == EXPECTED_COLUMNS

    def test_ensure_is_idempotent(self, sqlite_target):
        engine = create_engine(sqlite_target.url())
        ensure_sales_table(engine, "retail_sales")
        ensure_sales_table(engine, "retail_sales")
        assert inspect(engine).has_table("retail_sales")

    def test_incompatible_column_type_raises_schema_conflict(self, sqlite_target, records):
        engine = create_engine(sqlite_target.url())
        columns = ", ".join(
            f"{name} {'TEXT' if name == 'quantity' else 'FLOAT' if name == 'rating' else 'VARCHAR(50)'}"
            for name in EXPECTED_COLUMNS
        )
        with engine.begin() as conn:
            conn.execute(text(f"CREATE TABLE retail_sales ({columns})"))

        with pytest.raises(SchemaConflictError) as exc_info:
            load_sales_to_database(records, sqlite_target)

        assert "quantity" in exc_info.value.conflicts
        assert "unit_price" in exc_info.value.conflicts
        assert "rating" not in exc_info.value.conflicts

    def test_missing_column_raises_schema_conflict(self, sqlite_target, records):
        engine = create_engine(sqlite_target.url())
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE retail_sales (invoice_id VARCHAR(20), branch VARCHAR(10))"))

        with pytest.raises(SchemaConflictError) as exc_info:
            load_sales_to_database(records, sqlite_target)

        assert exc_info.value.conflicts["total"] == "missing"


class TestLoadSalesToDatabase:

    def test_inserts_all_records(self, sqlite_target, records):
        result = load_sales_to_database(records, sqlite_target)

        assert result.inserted == 3
        assert result.skipped == 0
        assert _count(sqlite_target) == 3

    def test_values_round_trip(self, sqlite_target, records):
        load_sales_to_database(records, sqlite_target)

        engine = create_engine(sqlite_target.url())
        table = build_sales_table("retail_sales")
        with engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.invoice_id == "A-1")).mappings().one()
            absent = conn.execute(table.select().where(table.c.invoice_id == "A-2")).mappings().one()

        assert row["total"] == pytest.approx(30.0)
        assert row["quantity"] == 3
        assert row["date"] == date(2019, 1, 5)
        assert row["time"] == time(13, 8)
        assert absent["rating"] is None
        assert absent["time"] is None

    def test_constraint_violation_skips_only_that_record(self, sqlite_target, sales_record):
        batch = enrich_sales([
            sales_record(invoice_id="DUP"),
            sales_record(invoice_id="DUP", quantity=9),
            sales_record(invoice_id="OK"),
        ])

        result = load_sales_to_database(batch, sqlite_target)

        assert result.inserted == 2
        assert result.skipped == 1
        assert result.failures[0]["invoice_id"] == "DUP"
        assert _count(sqlite_target) == 2

    def test_reload_without_truncate_skips_existing_rows(self, sqlite_target, records):
        load_sales_to_database(records, sqlite_target)
        second = load_sales_to_database(records, sqlite_target)

        assert second.inserted == 0
        assert second.skipped == 3
        assert _count(sqlite_target) == 3

    def test_reload_with_truncate_replaces_rows(self, sqlite_target, records):
        load_sales_to_database(records, sqlite_target)
        second = load_sales_to_database(records[:1], sqlite_target, truncate_before_load=True)

        assert second.inserted == 1
        assert _count(sqlite_target) == 1

    def test_custom_table_name(self, sqlite_target, records):
        load_sales_to_database(records, sqlite_target, table_name="sales_2019")
        assert _count(sqlite_target, "sales_2019") == 3

    def test_accepts_url_string(self, sqlite_target, records):
        url = f"sqlite:///{sqlite_target.database}"
        result = load_sales_to_database(records, url)
        assert result.inserted == 3

    def test_unreachable_destination_raises_connection_error(self, tmp_path, records):
        target = DatabaseTarget(
            name="broken", dialect="sqlite", database=str(tmp_path / "no_such_dir" / "retail.db")
        )

        with pytest.raises(SinkConnectionError) as exc_info:
            load_sales_to_database(records, target)

        assert isinstance(exc_info.value, ConnectionError)

    def test_result_is_json_friendly(self, sqlite_target, records):
        result = load_sales_to_database(records, sqlite_target)
        assert result.as_dict() == {
            "table": "retail_sales",
            "inserted": 3,
            "skipped": 0,
            "failures": [],
        }


class TestEngineLifecycle:

    @pytest.fixture
    def disposed(self, monkeypatch):
        calls = []
        monkeypatch.setattr(Engine, "dispose", lambda self, close=True: calls.append(self))
        return calls

    def test_engine_built_from_target_is_disposed(self, sqlite_target, records, disposed):
        load_sales_to_database(records, sqlite_target)
        assert len(disposed) == 1

    def test_engine_disposed_when_destination_unreachable(self, tmp_path, records, disposed):
        target = DatabaseTarget(
            name="broken", dialect="sqlite", database=str(tmp_path / "no_such_dir" / "retail.db")
        )
        with pytest.raises(SinkConnectionError):
            load_sales_to_database(records, target)
        assert len(disposed) == 1

    def test_caller_engine_is_left_open(self, sqlite_target, records, disposed):
        engine = create_engine(sqlite_target.url())

        load_sales_to_database(records, engine)

        assert disposed == []
        with engine.connect() as conn:
            assert conn.execute(text("SELECT COUNT(*) FROM retail_sales")).scalar_one() == 3
