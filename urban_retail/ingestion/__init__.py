"""
Data Ingestion Module
"""
from .csv_source import read_raw_csv, read_raw_frame
from .loader import LoadResult, LoadStatus, WarehouseLoader

__all__ = [
    "read_raw_csv",
    "read_raw_frame",
    "LoadResult",
    "LoadStatus",
    "WarehouseLoader",
]
