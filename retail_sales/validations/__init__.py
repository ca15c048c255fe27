from .validate_inputs import check_required_columns
from .validate_outputs import validate_sales_clean

__all__ = ["check_required_columns", "validate_sales_clean"]
