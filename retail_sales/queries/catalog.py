"""
Analytical query catalog.

Nine parameterless, read-only statements issued against the loaded sales
table. Statement text is stored with three placeholders so the same
catalog runs on MySQL, PostgreSQL and SQLite:

- {table}: destination table name
- {year}: calendar year of the `date` column
- {day_name}: English weekday name of the `date` column

Ranking uses RANK(), so ties share rank 1 and are all returned.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List

import pandas as pd
from sqlalchemy import text
from sqlalchemy.engine import Engine

from retail_sales.logger import setup_logger

logger = setup_logger("retail_sales.queries")


@dataclass(frozen=True)
class CatalogQuery:
    name: str
    description: str
    sql: str


DIALECT_FRAGMENTS = {
    "mysql": {
        "year": "YEAR(date)",
        "day_name": "DAYNAME(date)",
    },
    "postgresql": {
        "year": "CAST(EXTRACT(YEAR FROM date) AS INTEGER)",
        "day_name": "TRIM(TO_CHAR(date, 'Day'))",
    },
    "sqlite": {
        "year": "CAST(strftime('%Y', date) AS INTEGER)",
        "day_name": (
            "CASE CAST(strftime('%w', date) AS INTEGER) "
            "WHEN 0 THEN 'Sunday' WHEN 1 THEN 'Monday' WHEN 2 THEN 'Tuesday' "
            "WHEN 3 THEN 'Wednesday' WHEN 4 THEN 'Thursday' WHEN 5 THEN 'Friday' "
            "ELSE 'Saturday' END"
        ),
    },
}

_QUERIES = [
    CatalogQuery(
        name="payment_method_summary",
        description="Transactions and quantity sold per payment method",
        sql="""
        SELECT payment_method,
               COUNT(*) AS no_payments,
               SUM(quantity) AS no_qty_sold
        FROM {table}
        GROUP BY payment_method
        ORDER BY no_payments DESC
        """,
    ),
    CatalogQuery(
        name="top_rated_category_per_branch",
        description="Highest average-rated category in each branch",
        sql="""
        SELECT branch, category, avg_rating, rating_rank
        FROM (
            SELECT branch,
                   category,
                   AVG(rating) AS avg_rating,
                   RANK() OVER (PARTITION BY branch ORDER BY AVG(rating) DESC) AS rating_rank
            FROM {table}
            GROUP BY branch, category
        ) ranked
        WHERE rating_rank = 1
        ORDER BY branch, category
        """,
    ),
    CatalogQuery(
        name="busiest_day_per_branch",
        description="Weekday with the most transactions in each branch",
        sql="""
        SELECT branch, day_name, no_transactions, day_rank
        FROM (
            SELECT branch,
                   {day_name} AS day_name,
                   COUNT(*) AS no_transactions,
                   RANK() OVER (PARTITION BY branch ORDER BY COUNT(*) DESC) AS day_rank
            FROM {table}
            GROUP BY branch, {day_name}
        ) ranked
        WHERE day_rank = 1
        ORDER BY branch, day_name
        """,
    ),
    CatalogQuery(
        name="quantity_by_payment_method",
        description="Units sold per payment method",
        sql="""
        SELECT payment_method,
               SUM(quantity) AS total_quantity
        FROM {table}
        GROUP BY payment_method
        ORDER BY total_quantity DESC
        """,
    ),
    CatalogQuery(
        name="rating_stats_by_city_category",
        description="Minimum, maximum and average rating per city and category",
        sql="""
        SELECT city,
               category,
               MIN(rating) AS min_rating,
               MAX(rating) AS max_rating,
               AVG(rating) AS avg_rating
        FROM {table}
        GROUP BY city, category
        ORDER BY city, category
        """,
    ),
    CatalogQuery(
        name="revenue_profit_by_category",
        description="Revenue and profit (total x profit_margin) per category",
        sql="""
        SELECT category,
               SUM(total) AS total_revenue,
               SUM(total * profit_margin) AS total_profit
        FROM {table}
        GROUP BY category
        ORDER BY total_profit DESC
        """,
    ),
    CatalogQuery(
        name="preferred_payment_method_per_branch",
        description="Most common payment method in each branch",
        sql="""
        SELECT branch, payment_method, no_transactions, payment_rank
        FROM (
            SELECT branch,
                   payment_method,
                   COUNT(*) AS no_transactions,
                   RANK() OVER (PARTITION BY branch ORDER BY COUNT(*) DESC) AS payment_rank
            FROM {table}
            GROUP BY branch, payment_method
        ) ranked
        WHERE payment_rank = 1
        ORDER BY branch, payment_method
        """,
    ),
    CatalogQuery(
        name="invoices_by_shift_per_branch",
        description="Invoices per shift (Morning < 12:00, Afternoon < 18:00, Evening) per branch",
        sql="""
        SELECT branch, shift, COUNT(*) AS num_invoices
        FROM (
            SELECT branch,
                   CASE
                       WHEN time < '12:00:00' THEN 'Morning'
                       WHEN time < '18:00:00' THEN 'Afternoon'
                       ELSE 'Evening'
                   END AS shift
            FROM {table}
            WHERE time IS NOT NULL
        ) shifts
        GROUP BY branch, shift
        ORDER BY branch, num_invoices DESC
        """,
    ),
    CatalogQuery(
        name="revenue_decline_2022_2023",
        description="Top 5 branches by revenue decrease ratio from 2022 to 2023",
        sql="""
        WITH revenue_2022 AS (
            SELECT branch, SUM(total) AS revenue
            FROM {table}
            WHERE {year} = 2022
            GROUP BY branch
        ),
        revenue_2023 AS (
            SELECT branch, SUM(total) AS revenue
            FROM {table}
            WHERE {year} = 2023
            GROUP BY branch
        )
        SELECT ly.branch,
               ly.revenue AS last_year_revenue,
               cy.revenue AS current_year_revenue,
               ROUND(CAST((ly.revenue - cy.revenue) * 100.0 / ly.revenue AS DECIMAL(12, 4)), 2) AS drop_ratio
        FROM revenue_2022 ly
        JOIN revenue_2023 cy ON ly.branch = cy.branch
        WHERE ly.revenue > cy.revenue
        ORDER BY drop_ratio DESC
        LIMIT 5
        """,
    ),
]

CATALOG: "OrderedDict[str, CatalogQuery]" = OrderedDict((q.name, q) for q in _QUERIES)


def list_queries() -> List[CatalogQuery]:
    return list(CATALOG.values())


def render_query(name: str, dialect: str = "mysql", table: str = "retail_sales") -> str:
    """Return the statement text of a catalog entry for the given SQL dialect."""
    if name not in CATALOG:
        raise KeyError(f"Unknown query '{name}'. Known: {', '.join(CATALOG)}")
    if dialect not in DIALECT_FRAGMENTS:
        raise ValueError(f"Unsupported dialect '{dialect}'. Supported: {', '.join(DIALECT_FRAGMENTS)}")

    fragments = DIALECT_FRAGMENTS[dialect]
    return CATALOG[name].sql.format(table=table, **fragments).strip()


def run_query(engine: Engine, name: str, table: str = "retail_sales") -> pd.DataFrame:
    sql = render_query(name, engine.dialect.name, table)
    with engine.connect() as conn:
        result = pd.read_sql(text(sql), conn)
    logger.info(f"Query {name} returned {len(result)} rows")
    return result


def run_catalog(engine: Engine, table: str = "retail_sales") -> Dict[str, pd.DataFrame]:
    """Run every catalog query; each is an independent read."""
    return {name: run_query(engine, name, table) for name in CATALOG}
