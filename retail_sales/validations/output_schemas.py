import pandera.pandas as pa
from pandera.pandas import Check, Column, DataFrameSchema


sales_clean_schema = DataFrameSchema(
    {
        # Identifiers
        "invoice_id": Column(str, unique=True, report_duplicates="exclude_first", nullable=False),
        "branch": Column(str, nullable=False),

        # Dimensions
        "city": Column(str, nullable=True),
        "customer_type": Column(str, nullable=True),
        "gender": Column(str, nullable=True),
        "product_line": Column(str, nullable=True),
        "category": Column(str, nullable=True),
        "payment_method": Column(str, nullable=True),

        # Measures
        "unit_price": Column(float, Check.ge(0), nullable=False),
        "quantity": Column(int, Check.ge(0), nullable=False),
        "tax": Column(float, nullable=True),
        "total": Column(float, nullable=True),
        "cogs": Column(float, nullable=True),
        "gross_margin_pct": Column(float, nullable=True),
        "gross_income": Column(float, nullable=True),
        "profit_margin": Column(float, nullable=True),

        # Customer rating on a 0-10 scale
        "rating": Column(float, Check.between(0, 10), nullable=True),

        # Date dimensions (time holds datetime.time objects)
        "date": Column(pa.Date, nullable=False),
        "time": Column(nullable=True),
    },
    strict=True
)
