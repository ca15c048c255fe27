from dataclasses import asdict, dataclass, fields
from datetime import date as Date, time as Time
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SalesRecord:
    """
    One sales transaction after cleaning.

    Required attributes have plain types; nullable attributes are Optional and
    hold None when the source value was absent. `total` stays None until the
    enrichment step derives it.
    """

    invoice_id: str
    branch: str
    unit_price: float
    quantity: int
    date: Date
    city: Optional[str] = None
    customer_type: Optional[str] = None
    gender: Optional[str] = None
    product_line: Optional[str] = None
    category: Optional[str] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    time: Optional[Time] = None
    payment_method: Optional[str] = None
    cogs: Optional[float] = None
    gross_margin_pct: Optional[float] = None
    gross_income: Optional[float] = None
    rating: Optional[float] = None
    profit_margin: Optional[float] = None

    def as_row(self) -> Dict[str, Any]:
        """Column -> value mapping matching the destination table."""
        return asdict(self)


RECORD_FIELDS = tuple(f.name for f in fields(SalesRecord))
