from dataclasses import replace
from typing import Iterable, List

from retail_sales.logger import setup_logger
from retail_sales.models import SalesRecord

logger = setup_logger("retail_sales.etl.enrich")


def enrich_record(record: SalesRecord) -> SalesRecord:
    """
    Derive the line total of a single transaction.

    Formula: total = unit_price x quantity
    Example: unit_price=10, quantity=3 -> total = 30

    Pure and idempotent: re-enriching an enriched record recomputes the same
    value from the same inputs.
    """
    return replace(record, total=record.unit_price * record.quantity)


def enrich_sales(records: Iterable[SalesRecord]) -> List[SalesRecord]:
    enriched = [enrich_record(record) for record in records]
    logger.info(
        f"Enrichment: total derived for {len(enriched)} records "
        f"(${sum(r.total for r in enriched):,.2f} overall)"
    )
    return enriched
