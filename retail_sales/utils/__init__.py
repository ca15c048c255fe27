"""
Shared utilities for the ETL pipeline.

Keep helpers here small so DAG parsing stays reliable.
"""

from .db_urls import DatabaseTarget, build_database_url

__all__ = ["DatabaseTarget", "build_database_url"]
