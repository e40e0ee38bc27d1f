"""
Urban Retail Inventory Analytics

Normalized inventory warehouse, raw-record ETL, and KPI computation for retail
inventory reporting.
"""

__version__ = "1.0.0"
