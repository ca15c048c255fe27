"""
ETL steps: extract (CSV), clean (pandas), enrich (records), load (SQL).
"""
