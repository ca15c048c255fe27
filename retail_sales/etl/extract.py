import csv
from pathlib import Path
from typing import Mapping, Optional, Union

import pandas as pd

from retail_sales.exceptions import MalformedRowError, SourceNotFoundError
from retail_sales.logger import setup_logger

logger = setup_logger("retail_sales.etl.extract")


def normalize_columns(columns: pd.Index, aliases: Optional[Mapping[str, str]] = None) -> pd.Index:
    """
    Lowercase column names and replace spaces with underscores, then map
    known source spellings (e.g. "tax_5%") onto destination column names.
    """
    normalized = columns.str.strip().str.lower().str.replace(" ", "_")
    if aliases:
        normalized = normalized.map(lambda col: aliases.get(col, col))
    return pd.Index(normalized)


def check_field_counts(source: Path) -> int:
    """
    Compare every row's field count with the header's.

    pandas pads short rows with "" when NA inference is off, so the count is
    checked on the raw rows. Blank lines are skipped, as read_csv does.
    Returns the number of header fields.
    """
    with open(source, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if not header:
            raise MalformedRowError("file has no header row", line=1)

        expected = len(header)
        for row in reader:
            if not row or len(row) == expected:
                continue
            found = "fewer" if len(row) < expected else "more"
            raise MalformedRowError(
                f"expected {expected} fields, found {found} ({len(row)})",
                line=reader.line_num,
            )
    return expected


def load_sales_csv(
    path: Union[str, Path],
    column_aliases: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """
    Read a comma-delimited sales file into a DataFrame of raw strings.

    Every field is kept as text exactly as written (no NA inference); turning
    null tokens into missing values is the cleaning step's job.
    """
    source = Path(path)
    logger.info(f"Extracting sales from {source}")

    if not source.is_file():
        raise SourceNotFoundError(f"Source file not found: {source}")

    try:
        check_field_counts(source)
        df = pd.read_csv(source, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise MalformedRowError("file has no header row", line=1) from exc
    except pd.errors.ParserError as exc:
        raise MalformedRowError(f"field count does not match header: {exc}") from exc
    except OSError as exc:
        raise SourceNotFoundError(f"Cannot read source file {source}: {exc}") from exc

    df.columns = normalize_columns(df.columns, column_aliases)
    logger.info(f"Successfully extracted {len(df)} rows from {source.name}")
    logger.info(f"Normalized sales columns: {list(df.columns)}")

    return df
