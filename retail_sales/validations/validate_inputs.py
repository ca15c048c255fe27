from pandera.errors import SchemaErrors
from .input_schemas import REQUIRED_COLUMNS, sales_raw_schema
from retail_sales.exceptions import MalformedRowError
from retail_sales.logger import setup_logger

logger = setup_logger("retail_sales.validation.input")


def check_required_columns(df):
    """
    Check the raw extract against the input schema.
    A header without the required columns cannot yield a single record.
    """
    logger.info(f"Starting header validation on {len(df.columns)} columns")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        logger.error(f"Header is missing required columns: {missing}")
        raise MalformedRowError(f"header is missing required columns: {', '.join(missing)}", line=1)

    try:
        validated_df = sales_raw_schema.validate(df, lazy=True)
    except SchemaErrors as err:
        failed = err.failure_cases
        logger.error(f"Raw sales validation failed:\n{failed.groupby(['column', 'check']).size()}")
        raise MalformedRowError("raw columns are not text; was the file read with dtype=str?") from err

    logger.info("Header validation passed")
    return validated_df
