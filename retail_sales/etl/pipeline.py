from typing import Any, Dict, List, Mapping, Optional, Sequence

from retail_sales.etl.clean import clean_sales, to_sales_records
from retail_sales.etl.enrich import enrich_sales
from retail_sales.etl.extract import load_sales_csv
from retail_sales.etl.load_database import DEFAULT_TABLE_NAME, load_sales_to_database
from retail_sales.logger import setup_logger
from retail_sales.settings import cleaning_settings, database_targets
from retail_sales.utils.db_urls import DatabaseTarget
from retail_sales.validations.validate_inputs import check_required_columns

logger = setup_logger("retail_sales.etl.pipeline")


def run_pipeline(
    config: Mapping[str, Any],
    targets: Optional[Sequence[DatabaseTarget]] = None,
) -> Dict[str, Any]:
    """
    Run the whole batch: extract -> validate header -> clean -> enrich -> load.

    Targets are loaded one after another; a fatal error on one target
    (unreachable, incompatible table) aborts the run.
    Returns a JSON-friendly summary of the run.
    """
    source = config["source"]
    sink = config["sink"]
    targets = list(targets) if targets is not None else database_targets(config)
    table_name = sink.get("table_name", DEFAULT_TABLE_NAME)

    raw_df = load_sales_csv(source["path"], source.get("column_aliases"))
    check_required_columns(raw_df)

    clean_df, report = clean_sales(raw_df, cleaning_settings(config))
    records = enrich_sales(to_sales_records(clean_df))

    loads: List[Dict[str, Any]] = []
    for target in targets:
        result = load_sales_to_database(
            records,
            target,
            table_name=table_name,
            truncate_before_load=sink.get("truncate_before_load", False),
        )
        loads.append({"target": target.name, **result.as_dict()})

    summary = {
        "source": str(source["path"]),
        "cleaning": report.as_dict(),
        "records_loaded": len(records),
        "loads": loads,
    }
    logger.info(
        f"Pipeline SUCCESS: {len(records)} records prepared, "
        f"{len(loads)} target(s) loaded"
    )
    return summary
