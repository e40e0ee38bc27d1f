"""
Database Module
"""
from .connection import create_db_engine, create_session_factory, session_scope
from .models import Base, Category, InventoryTransaction, Product, Region, Store
from .warehouse import FACT_SCHEMA, InventoryWarehouse

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "Base",
    "Category",
    "InventoryTransaction",
    "Product",
    "Region",
    "Store",
    "FACT_SCHEMA",
    "InventoryWarehouse",
]
