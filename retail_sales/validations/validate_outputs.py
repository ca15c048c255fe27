from pandera.errors import SchemaError, SchemaErrors
from .output_schemas import sales_clean_schema
from retail_sales.logger import setup_logger

logger = setup_logger("retail_sales.validation.output")


def validate_sales_clean(df):
    """
    Validate the cleaned sales frame against domain bounds.
    Returns the frame without offending rows and the number of rows dropped.
    """
    logger.info(f"Starting output validation on {len(df)} records")

    try:
        validated_df = sales_clean_schema.validate(df, lazy=True)
        logger.info("Output validation passed")
        return validated_df, 0

    except SchemaErrors as err:
        failed = err.failure_cases

        logger.warning(
            f"Output validation failed with {len(failed)} issues"
        )
        logger.warning(
            f"Failure summary:\n{failed.groupby(['column', 'check']).size()}"
        )

        # Drop invalid rows by filtering out failed indices
        failed_indices = failed["index"].dropna().unique()
        clean_df = df.drop(index=failed_indices) if len(failed_indices) > 0 else df.copy()
        dropped = len(df) - len(clean_df)

        # Re-validate cleaned dataset
        try:
            clean_df = sales_clean_schema.validate(clean_df)
            logger.info(
                f"Cleaned output dataset: {len(clean_df)} valid rows"
            )
        except (SchemaError, SchemaErrors):
            logger.warning("Could not clean all invalid rows. Returning best effort.")

        return clean_df, dropped
