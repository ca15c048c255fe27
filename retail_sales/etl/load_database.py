from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import (
    Column,
    Date,
    Float,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Time,
    create_engine,
    func,
    inspect,
    select,
)
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError

from retail_sales.exceptions import SchemaConflictError, SinkConnectionError
from retail_sales.logger import setup_logger
from retail_sales.models import SalesRecord
from retail_sales.utils.db_urls import DatabaseTarget

logger = setup_logger("retail_sales.etl.load_database")

DEFAULT_TABLE_NAME = "retail_sales"


def build_sales_table(name: str = DEFAULT_TABLE_NAME, metadata: Optional[MetaData] = None) -> Table:
    """Destination table; column set and types mirror the CREATE TABLE of the project."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("invoice_id", String(20), primary_key=True),
        Column("branch", String(10), nullable=False),
        Column("city", String(50)),
        Column("customer_type", String(50)),
        Column("gender", String(10)),
        Column("product_line", String(100)),
        Column("unit_price", Float),
        Column("quantity", Integer),
        Column("tax", Float),
        Column("total", Float),
        Column("date", Date),
        Column("time", Time),
        Column("payment_method", String(20)),
        Column("cogs", Float),
        Column("gross_margin_pct", Float),
        Column("gross_income", Float),
        Column("rating", Float),
        Column("category", String(50)),
        Column("profit_margin", Float),
    )


@dataclass
class LoadResult:
    table: str
    inserted: int = 0
    skipped: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "table": self.table,
            "inserted": self.inserted,
            "skipped": self.skipped,
            "failures": list(self.failures),
        }


def _type_family(sql_type) -> str:
    # Order matters: Float subclasses Numeric
    if isinstance(sql_type, String):
        return "string"
    if isinstance(sql_type, Integer):
        return "integer"
    if isinstance(sql_type, Numeric):
        return "float"
    if isinstance(sql_type, Date):
        return "date"
    if isinstance(sql_type, Time):
        return "time"
    return type(sql_type).__name__.lower()


def find_schema_conflicts(engine: Engine, table: Table) -> Dict[str, str]:
    """
    Compare an existing table with the expected definition.
    Returns column -> reason for every missing or incompatible column.
    """
    existing = {
        col["name"].lower(): col["type"]
        for col in inspect(engine).get_columns(table.name)
    }
    conflicts = {}
    for column in table.columns:
        found = existing.get(column.name)
        if found is None:
            conflicts[column.name] = "missing"
            continue
        expected_family = _type_family(column.type)
        found_family = _type_family(found)
        if found_family != expected_family:
            conflicts[column.name] = f"expected {expected_family}, found {found}"
    return conflicts


def ensure_sales_table(engine: Engine, table_name: str = DEFAULT_TABLE_NAME) -> Table:
    """
    Create the destination table if absent, otherwise check its columns.
    Idempotent.
    """
    metadata = MetaData()
    table = build_sales_table(table_name, metadata)

    if inspect(engine).has_table(table_name):
        conflicts = find_schema_conflicts(engine, table)
        if conflicts:
            logger.error("Existing table %s conflicts with expected schema: %s", table_name, conflicts)
            raise SchemaConflictError(table_name, conflicts)
        logger.info("Destination table %s already exists with a compatible schema", table_name)
    else:
        metadata.create_all(engine, tables=[table], checkfirst=True)
        logger.info("Created destination table %s", table_name)

    return table


def create_sales_engine(target: Union[DatabaseTarget, URL, str, Engine]) -> Engine:
    if isinstance(target, Engine):
        return target
    url = target.url() if isinstance(target, DatabaseTarget) else target
    return create_engine(url)


def _describe(target) -> str:
    if isinstance(target, DatabaseTarget):
        return target.name
    if isinstance(target, Engine):
        return target.url.render_as_string(hide_password=True)
    if isinstance(target, URL):
        return target.render_as_string(hide_password=True)
    return "database"


def check_connection(engine: Engine, name: str) -> None:
    try:
        with engine.connect():
            pass
    except (OperationalError, InterfaceError) as exc:
        logger.error("Destination %s is unreachable: %s", name, exc)
        raise SinkConnectionError(f"Cannot connect to {name}: {exc}") from exc


def load_sales_to_database(
    records: Sequence[SalesRecord],
    target: Union[DatabaseTarget, URL, str, Engine],
    *,
    table_name: str = DEFAULT_TABLE_NAME,
    truncate_before_load: bool = False,
) -> LoadResult:
    """
    Write enriched records into a relational table.

    Each record is inserted in its own transaction: a record rejected by the
    database (duplicate key, value too long, ...) is logged and skipped while
    the rest of the batch continues. The batch as a whole is not atomic.
    Returns the row counts of the load.
    """
    engine = create_sales_engine(target)
    name = _describe(target)
    logger.info("Preparing load of %s records into %s.%s", len(records), name, table_name)

    try:
        check_connection(engine, name)

        table = ensure_sales_table(engine, table_name)

        if truncate_before_load:
            with engine.begin() as conn:
                conn.execute(table.delete())
            logger.info("Emptied %s before load", table_name)

        result = LoadResult(table=table_name)
        insert_stmt = table.insert()

        for record in records:
            try:
                with engine.begin() as conn:
                    conn.execute(insert_stmt, record.as_row())
                result.inserted += 1
            except (IntegrityError, DataError) as exc:
                result.skipped += 1
                reason = str(exc.orig) if exc.orig is not None else str(exc)
                result.failures.append({"invoice_id": record.invoice_id, "error": reason})
                logger.warning("Skipped invoice %s: %s", record.invoice_id, reason)

        with engine.connect() as conn:
            row_count = conn.execute(select(func.count()).select_from(table)).scalar_one()

        logger.info(
            "Load complete for %s: %s inserted, %s skipped, %s rows in %s",
            name, result.inserted, result.skipped, row_count, table_name,
        )
        return result
    finally:
        # Engines passed in belong to the caller
        if engine is not target:
            engine.dispose()
