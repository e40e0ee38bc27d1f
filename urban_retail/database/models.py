"""
Database Models - Normalized Inventory Schema

Four dimension tables and one fact table:

Dimension Tables:
- Region: generated id, unique name
- Store: natural key, belongs to a Region
- Category: generated id, unique name
- Product: natural key, belongs to a Category

Fact Tables:
- InventoryTransaction: one row per (date, store, product) observation.
  Append-only; there is no update or delete path.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Column limits; the loader rejects values that would not fit
KEY_LENGTH = 10
LABEL_LENGTH = 50
INTEGER_MAX = 2**31 - 1


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class Region(Base):
    """Sales region. Ids are assigned in first-seen order during load."""
    __tablename__ = "regions"

    region_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    region_name: Mapped[str] = mapped_column(String(LABEL_LENGTH), unique=True, nullable=False)

    stores: Mapped[List["Store"]] = relationship(back_populates="region")


class Store(Base):
    """Store keyed by its natural Store ID"""
    __tablename__ = "stores"

    store_id: Mapped[str] = mapped_column(String(KEY_LENGTH), primary_key=True)
    region_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("regions.region_id"), nullable=False
    )

    region: Mapped["Region"] = relationship(back_populates="stores")


class Category(Base):
    """Product category. Ids are assigned in first-seen order during load."""
    __tablename__ = "categories"

    category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    category_name: Mapped[str] = mapped_column(String(LABEL_LENGTH), unique=True, nullable=False)

    products: Mapped[List["Product"]] = relationship(back_populates="category")


class Product(Base):
    """Product keyed by its natural Product ID"""
    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(String(KEY_LENGTH), primary_key=True)
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.category_id"), nullable=False
    )

    category: Mapped["Category"] = relationship(back_populates="products")


# =============================================================================
# FACT TABLES
# =============================================================================

class InventoryTransaction(Base):
    """
    Inventory Transaction Fact Table

    Grain: one row per raw record (date, store, product). Rows are never
    deduplicated, so loading the same file twice doubles the fact count.
    """
    __tablename__ = "inventory_transactions"

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Keys
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    store_id: Mapped[str] = mapped_column(
        String(KEY_LENGTH), ForeignKey("stores.store_id"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(
        String(KEY_LENGTH), ForeignKey("products.product_id"), nullable=False
    )

    # Inventory measures
    inventory_level: Mapped[int] = mapped_column(Integer, nullable=False)
    units_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    units_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    demand_forecast: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)

    # Pricing
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    discount: Mapped[int] = mapped_column(Integer, default=0)
    competitor_pricing: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))

    # Context
    weather_condition: Mapped[Optional[str]] = mapped_column(String(LABEL_LENGTH))
    holiday_promotion: Mapped[bool] = mapped_column(Boolean, default=False)
    seasonality: Mapped[Optional[str]] = mapped_column(String(LABEL_LENGTH))

    __table_args__ = (
        Index("ix_inventory_product_store", "product_id", "store_id"),
        Index("ix_inventory_date", "transaction_date"),
    )
