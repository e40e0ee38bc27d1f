"""
Inventory Analytics Module
"""
from .metrics import FAST_MOVING, SLOW_MOVING, MetricsEngine, empty_fact_frame

__all__ = [
    "FAST_MOVING",
    "SLOW_MOVING",
    "MetricsEngine",
    "empty_fact_frame",
]
