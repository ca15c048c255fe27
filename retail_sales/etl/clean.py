from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from retail_sales.logger import setup_logger
from retail_sales.models import RECORD_FIELDS, SalesRecord
from retail_sales.validations.input_schemas import REQUIRED_COLUMNS
from retail_sales.validations.validate_outputs import validate_sales_clean

logger = setup_logger("retail_sales.etl.clean")

CURRENCY_FIELDS = ("unit_price", "tax", "total", "cogs", "gross_income")
RATIO_FIELDS = ("rating", "gross_margin_pct", "profit_margin")


@dataclass
class CleaningSettings:
    currency_strip: Sequence[str] = ("$", ",")
    null_tokens: Sequence[str] = ("", "NA", "N/A", "NULL", "null", "nan", "NaN")
    date_formats: Sequence[str] = ("%d/%m/%y", "%Y-%m-%d", "%m/%d/%Y", "%d-%m-%Y")
    time_formats: Sequence[str] = ("%H:%M:%S", "%H:%M", "%I:%M:%S %p", "%I:%M %p")


@dataclass
class CleaningReport:
    rows_in: int = 0
    duplicates: int = 0
    missing_required: int = 0
    parse_failures: int = 0
    invalid_values: int = 0
    rows_out: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _normalize_text(df: pd.DataFrame, null_tokens: Sequence[str]) -> pd.DataFrame:
    df = df.astype(object)
    for col in df.columns:
        df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
    df = df.mask(df.isin(list(null_tokens))).astype(object)
    return df.where(df.notna(), None)


def _parse_numeric(series: pd.Series, strip: Sequence[str] = ()) -> Tuple[pd.Series, pd.Series]:
    """Return parsed floats and a mask of present values that failed to parse."""
    text = series.where(series.notna(), "").astype(str)
    for token in strip:
        text = text.str.replace(token, "", regex=False)
    parsed = pd.to_numeric(text.str.strip(), errors="coerce").astype("float64")
    failed = series.notna() & parsed.isna()
    return parsed, failed


def _parse_temporal(series: pd.Series, formats: Sequence[str]) -> Tuple[pd.Series, pd.Series]:
    parsed = pd.Series(pd.NaT, index=series.index, dtype="datetime64[ns]")
    for fmt in formats:
        parsed = parsed.fillna(pd.to_datetime(series, format=fmt, errors="coerce"))
    failed = series.notna() & parsed.isna()
    return parsed, failed


def deduplicate(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """Drop rows identical to an earlier row. First occurrences and their order are kept."""
    exact_dupes = df.duplicated(keep="first")
    return df[~exact_dupes], int(exact_dupes.sum())


def drop_reused_invoice_ids(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """
    Keep the first surviving row per invoice_id. Runs after type coercion so
    a discarded first row does not take a valid later one with it.
    """
    reused_ids = df.duplicated(subset=["invoice_id"], keep="first")
    if reused_ids.any():
        logger.warning(f"Dedup: {int(reused_ids.sum())} rows reuse an earlier invoice_id")
    return df[~reused_ids], int(reused_ids.sum())


def clean_sales(
    df: pd.DataFrame,
    settings: CleaningSettings = None,
) -> Tuple[pd.DataFrame, CleaningReport]:
    """
    Deduplicate, drop incomplete rows and coerce raw sales strings into typed
    columns. Returns the cleaned frame (columns in record order) and the
    per-reason drop counts.
    """
    settings = settings or CleaningSettings()
    report = CleaningReport(rows_in=len(df))
    logger.info(f"Starting cleaning of {len(df)} rows")

    # --------------------------------------------------
    # 0. Align columns on the record layout, null tokens -> None
    # --------------------------------------------------
    unknown = [col for col in df.columns if col not in RECORD_FIELDS]
    if unknown:
        logger.info(f"Ignoring source columns not in the destination schema: {unknown}")
    df = _normalize_text(df.reindex(columns=list(RECORD_FIELDS)), settings.null_tokens)

    # --------------------------------------------------
    # 1. Deduplicate exact rows
    # --------------------------------------------------
    df, report.duplicates = deduplicate(df)

    # --------------------------------------------------
    # 2. Required values (total is derived from unit_price x quantity)
    # --------------------------------------------------
    missing = df[list(REQUIRED_COLUMNS)].isna().any(axis=1)
    df = df[~missing]
    report.missing_required = int(missing.sum())

    # --------------------------------------------------
    # 3. Type coercion
    # --------------------------------------------------
    # Any present value that does not parse rejects the whole row.
    failed = pd.Series(False, index=df.index)
    typed = {}

    for col in CURRENCY_FIELDS:
        typed[col], col_failed = _parse_numeric(df[col], strip=settings.currency_strip)
        failed |= col_failed

    for col in RATIO_FIELDS:
        typed[col], col_failed = _parse_numeric(df[col], strip=("%",))
        failed |= col_failed

    quantity, col_failed = _parse_numeric(df["quantity"])
    failed |= col_failed | (quantity.notna() & (quantity % 1 != 0))
    typed["quantity"] = quantity

    dates, col_failed = _parse_temporal(df["date"], settings.date_formats)
    failed |= col_failed
    times, col_failed = _parse_temporal(df["time"], settings.time_formats)
    failed |= col_failed

    report.parse_failures = int(failed.sum())
    keep = ~failed
    df = df[keep].copy()

    for col, values in typed.items():
        df[col] = values[keep]
    df["quantity"] = df["quantity"].astype("int64")
    df["date"] = dates[keep].dt.date
    df["time"] = times[keep].map(lambda ts: None if pd.isna(ts) else ts.time())

    # Reused invoice ids count as duplicates too
    df, reused = drop_reused_invoice_ids(df)
    report.duplicates += reused

    # --------------------------------------------------
    # 4. Domain bounds (quantity, price, rating, unique ids)
    # --------------------------------------------------
    df, report.invalid_values = validate_sales_clean(df)

    df = df.reset_index(drop=True)
    report.rows_out = len(df)

    for reason in ("duplicates", "missing_required", "parse_failures", "invalid_values"):
        count = getattr(report, reason)
        if count:
            logger.warning(f"Dropped {count} rows: {reason.replace('_', ' ')}")
    logger.info(f"Cleaning completed: {report.rows_out}/{report.rows_in} rows retained")

    return df, report


def to_sales_records(df: pd.DataFrame) -> List[SalesRecord]:
    """Convert a cleaned frame into SalesRecord objects (NaN -> None)."""
    rows = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    return [SalesRecord(**row) for row in rows]
