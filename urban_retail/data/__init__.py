"""
Data Generation Module
"""
from .generators import InventoryDataGenerator

__all__ = [
    "InventoryDataGenerator",
]
