"""
Data Transformation Module
"""
from .normalizer import (
    RAW_COLUMN_MAP,
    FactCandidate,
    NormalizedBatch,
    RecordRejection,
    SchemaNormalizer,
    canonicalize_record,
)

__all__ = [
    "RAW_COLUMN_MAP",
    "FactCandidate",
    "NormalizedBatch",
    "RecordRejection",
    "SchemaNormalizer",
    "canonicalize_record",
]
