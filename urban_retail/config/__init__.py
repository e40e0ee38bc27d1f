"""
Urban Retail Inventory Analytics
Configuration Module
"""
from .settings import MetricThresholds, Settings, get_settings

__all__ = ["MetricThresholds", "Settings", "get_settings"]
