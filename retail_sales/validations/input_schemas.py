from pandera.pandas import Column, DataFrameSchema


REQUIRED_COLUMNS = ("invoice_id", "branch", "date", "unit_price", "quantity")

# Raw extract: every value is still text. Only the columns needed to build
# a record (and derive its total) must be present in the header.
sales_raw_schema = DataFrameSchema(
    {
        # Identifiers
        "invoice_id": Column(str, nullable=True),
        "branch": Column(str, nullable=True),

        # Inputs of the derived total
        "unit_price": Column(str, nullable=True),
        "quantity": Column(str, nullable=True),

        # Timestamp
        "date": Column(str, nullable=True),

        # Optional attributes
        "city": Column(str, nullable=True, required=False),
        "customer_type": Column(str, nullable=True, required=False),
        "gender": Column(str, nullable=True, required=False),
        "product_line": Column(str, nullable=True, required=False),
        "category": Column(str, nullable=True, required=False),
        "tax": Column(str, nullable=True, required=False),
        "total": Column(str, nullable=True, required=False),
        "time": Column(str, nullable=True, required=False),
        "payment_method": Column(str, nullable=True, required=False),
        "cogs": Column(str, nullable=True, required=False),
        "gross_margin_pct": Column(str, nullable=True, required=False),
        "gross_income": Column(str, nullable=True, required=False),
        "rating": Column(str, nullable=True, required=False),
        "profit_margin": Column(str, nullable=True, required=False),
    },
    strict=False  # Unknown source columns are dropped by the cleaner
)
