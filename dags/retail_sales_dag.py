from datetime import datetime, timedelta
from airflow.decorators import dag, task
from airflow.exceptions import AirflowException
from typing import Any

from retail_sales.logger import setup_logger
from retail_sales.settings import load_config

# Load config (env overrides for database credentials applied here)
config = load_config()

SOURCE_PATH = config["source"]["path"]
TABLE_NAME = config["sink"].get("table_name", "retail_sales")

# Default arguments for DAG
DEFAULT_ARGS = {
    "owner": "data-engineering",
    "email_on_failure": False,
    "email_on_retry": False,
    "retries": 2,
    "retry_delay": timedelta(minutes=5),
    "execution_timeout": timedelta(hours=1),
}


@dag(
    dag_id="retail_sales_sql_etl",
    description="""
    Retail Sales SQL ETL - Loads the sales CSV, cleans it with pandas,
    derives totals and writes the table to every configured database.

    Data Flow:
    1. Extract: Read the sales CSV (all fields as text)
    2. Clean: Deduplicate, drop incomplete rows, coerce types, check bounds
    3. Load: Derive total = unit_price x quantity and insert per target
    4. Report: Run the analytical query catalog against each target
    """,
    start_date=datetime(2026, 1, 1),
    schedule=None,
    catchup=False,
    max_active_runs=1,
    default_args=DEFAULT_ARGS,
    tags=["retail", "etl", "sql"],
    doc_md=__doc__,
)
def retail_sales_sql_etl():
    """
    Retail Sales SQL ETL DAG

    Batch load of a static dataset; rerunning from scratch is the recovery path.
    """
    from retail_sales.etl.clean import clean_sales, to_sales_records
    from retail_sales.etl.enrich import enrich_sales
    from retail_sales.etl.extract import load_sales_csv
    from retail_sales.etl.load_database import create_sales_engine, load_sales_to_database
    from retail_sales.queries import run_catalog
    from retail_sales.settings import cleaning_settings, database_targets
    from retail_sales.validations.validate_inputs import check_required_columns

    logger = setup_logger("dags.retail_sales_sql_etl")

    @task(
        task_id="extract_raw_sales",
        doc_md="""
        Reads the sales CSV into a DataFrame of raw strings.

        **Column Normalization:**
        - Lowercase, spaces replaced with underscores
        - Known source spellings mapped (e.g. `tax_5%` -> `tax`)

        **Fails on:** missing file, rows whose field count differs from the header,
        header without the required columns.
        """,
    )
    def extract():
        """Extract raw sales from the source file"""
        try:
            raw_df = load_sales_csv(SOURCE_PATH, config["source"].get("column_aliases"))
            check_required_columns(raw_df)
            logger.info(f"✓ Extracted {len(raw_df)} sales rows")
            return raw_df
        except Exception as e:
            logger.error(f"✗ Extraction failed: {str(e)}")
            raise AirflowException(f"Data extraction failed: {str(e)}")

    @task(
        task_id="clean_sales",
        doc_md="""
        Cleans the raw extract.

        **Steps:**
        1. Null tokens -> missing values
        2. Drop exact duplicate rows, then rows reusing an invoice_id
        3. Drop rows missing invoice_id, branch, date, unit_price or quantity
        4. Parse currency strings, dates and times (unparseable rows dropped)
        5. Domain bounds: quantity >= 0, unit_price >= 0, rating in [0, 10]
        """,
    )
    def clean(raw_df):
        """Clean and type the sales data"""
        try:
            clean_df, report = clean_sales(raw_df, cleaning_settings(config))
            logger.info(f"✓ Cleaning completed: {report.as_dict()}")
            if clean_df.empty:
                raise AirflowException("Cleaning resulted in empty dataset")
            return clean_df
        except AirflowException:
            raise
        except Exception as e:
            logger.error(f"✗ Cleaning failed: {str(e)}")
            raise AirflowException(f"Data cleaning failed: {str(e)}")

    @task(
        task_id="enrich_and_load_targets",
        doc_md="""
        Derives `total = unit_price x quantity` and loads every configured target.

        **Per target:**
        - Table created if absent; an incompatible existing table fails the task
        - Rows rejected by the database are logged and skipped
        """,
    )
    def load_targets(clean_df):
        """Enrich records and write them to each database"""
        try:
            records = enrich_sales(to_sales_records(clean_df))
            loads = {}
            for target in database_targets(config):
                result = load_sales_to_database(
                    records,
                    target,
                    table_name=TABLE_NAME,
                    truncate_before_load=config["sink"].get("truncate_before_load", False),
                )
                if result.skipped > 0:
                    logger.warning(f"  ⚠ {target.name}: {result.skipped} rows rejected by the database")
                loads[target.name] = {"inserted": result.inserted, "skipped": result.skipped}
            logger.info(f"✓ Load completed: {loads}")
            return loads
        except Exception as e:
            logger.error(f"✗ Load failed: {str(e)}")
            raise AirflowException(f"Pipeline failed at load stage: {str(e)}")

    @task(
        task_id="run_query_catalog",
        doc_md="""
        Runs the nine analytical queries against each target and logs row counts.
        Read-only.
        """,
    )
    def report(loads):
        """Run the analytical query catalog"""
        try:
            summary = {}
            for target in database_targets(config):
                if target.name not in loads:
                    continue
                engine = create_sales_engine(target)
                try:
                    results = run_catalog(engine, TABLE_NAME)
                finally:
                    engine.dispose()
                summary[target.name] = {name: len(df) for name, df in results.items()}
                logger.info(f"✓ {target.name}: {summary[target.name]}")
            return summary
        except Exception as e:
            logger.error(f"✗ Query catalog failed: {str(e)}")
            raise AirflowException(f"Pipeline failed at report stage: {str(e)}")

    # Define task dependencies
    extracted = extract()
    cleaned = clean(extracted)
    loaded = load_targets(cleaned)
    report(loaded)


# Instantiate DAG
dag = retail_sales_sql_etl()
