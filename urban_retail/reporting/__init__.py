"""
Reporting Module
"""
from .assembler import COLUMN_HEADERS, ReportAssembler, round_half_up

__all__ = [
    "COLUMN_HEADERS",
    "ReportAssembler",
    "round_half_up",
]
