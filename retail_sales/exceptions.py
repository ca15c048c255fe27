"""
Error taxonomy for the sales ETL.

Row-level problems (duplicates, missing values, unparseable fields, rejected
inserts) never raise: they are counted and the row is skipped. Everything
defined here is fatal for a run.
"""

from typing import Dict, Optional


class RetailSalesError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(RetailSalesError):
    """The configuration file is missing a section or holds an unusable value."""


class SourceNotFoundError(RetailSalesError):
    """The source CSV does not exist or cannot be read."""


class MalformedRowError(RetailSalesError):
    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class SchemaConflictError(RetailSalesError):
    def __init__(self, table: str, conflicts: Dict[str, str]):
        self.table = table
        self.conflicts = conflicts
        details = ", ".join(f"{col} ({reason})" for col, reason in sorted(conflicts.items()))
        super().__init__(f"Existing table '{table}' is incompatible: {details}")


class SinkConnectionError(RetailSalesError, ConnectionError):
    """The destination database cannot be reached."""
