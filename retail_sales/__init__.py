"""
Retail sales ETL: CSV -> pandas cleaning -> relational tables -> SQL catalog.
"""

__version__ = "1.0.0"
