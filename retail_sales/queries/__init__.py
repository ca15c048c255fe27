from .catalog import CATALOG, list_queries, render_query, run_catalog, run_query

__all__ = ["CATALOG", "list_queries", "render_query", "run_catalog", "run_query"]
