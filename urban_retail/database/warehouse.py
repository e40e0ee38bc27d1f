"""
Inventory Warehouse

Repository over the normalized schema. The loader is its only writer; the
metrics engine reads it back as Polars DataFrames.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import polars as pl
import structlog
from sqlalchemy import Engine, func, select

from urban_retail.database.connection import (
    create_db_engine,
    create_session_factory,
    session_scope,
)
from urban_retail.database.models import (
    Category,
    InventoryTransaction,
    Product,
    Region,
    Store,
)

logger = structlog.get_logger(__name__)


FACT_SCHEMA: Dict[str, pl.DataType] = {
    "transaction_id": pl.Int64,
    "transaction_date": pl.Date,
    "store_id": pl.Utf8,
    "product_id": pl.Utf8,
    "inventory_level": pl.Int64,
    "units_sold": pl.Int64,
    "units_ordered": pl.Int64,
    "demand_forecast": pl.Float64,
    "price": pl.Float64,
    "discount": pl.Int64,
    "competitor_pricing": pl.Float64,
    "weather_condition": pl.Utf8,
    "holiday_promotion": pl.Boolean,
    "seasonality": pl.Utf8,
}

REGION_SCHEMA = {"region_id": pl.Int64, "region_name": pl.Utf8}
STORE_SCHEMA = {"store_id": pl.Utf8, "region_id": pl.Int64}
CATEGORY_SCHEMA = {"category_id": pl.Int64, "category_name": pl.Utf8}
PRODUCT_SCHEMA = {"product_id": pl.Utf8, "category_id": pl.Int64}


class InventoryWarehouse:
    """
    Normalized inventory store backed by SQLAlchemy.

    Dimension inserts are idempotent; fact inserts are append-only.

    Example:
        warehouse = InventoryWarehouse()  # in-memory SQLite
        warehouse.add_dimensions(regions={"North": 1}, ...)
        facts = warehouse.fact_frame()
    """

    def __init__(self, engine: Optional[Engine] = None, url: Optional[str] = None):
        self.engine = engine or create_db_engine(url)
        self._session_factory = create_session_factory(self.engine)

    def session(self):
        """Transactional session scope"""
        return session_scope(self._session_factory)

    # -------------------------------------------------------------------------
    # Dimension lookups
    # -------------------------------------------------------------------------

    def region_ids(self) -> Dict[str, int]:
        """Region name -> id, in id order"""
        with self.session() as db:
            rows = db.execute(
                select(Region.region_name, Region.region_id).order_by(Region.region_id)
            ).all()
        return {name: region_id for name, region_id in rows}

    def category_ids(self) -> Dict[str, int]:
        """Category name -> id, in id order"""
        with self.session() as db:
            rows = db.execute(
                select(Category.category_name, Category.category_id).order_by(Category.category_id)
            ).all()
        return {name: category_id for name, category_id in rows}

    def store_regions(self) -> Dict[str, int]:
        """Store id -> region id"""
        with self.session() as db:
            rows = db.execute(select(Store.store_id, Store.region_id).order_by(Store.store_id)).all()
        return {store_id: region_id for store_id, region_id in rows}

    def product_categories(self) -> Dict[str, int]:
        """Product id -> category id"""
        with self.session() as db:
            rows = db.execute(
                select(Product.product_id, Product.category_id).order_by(Product.product_id)
            ).all()
        return {product_id: category_id for product_id, category_id in rows}

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add_dimensions(
        self,
        regions: Mapping[str, int],
        stores: Mapping[str, int],
        categories: Mapping[str, int],
        products: Mapping[str, int],
    ) -> Dict[str, int]:
        """
        Persist dimension rows, skipping values that already exist.

        Regions and categories are written before the stores and products that
        reference them.

        Returns:
            Number of newly inserted rows per dimension
        """
        existing_regions = self.region_ids()
        existing_categories = self.category_ids()
        existing_stores = self.store_regions()
        existing_products = self.product_categories()

        new_regions = [
            Region(region_id=region_id, region_name=name)
            for name, region_id in regions.items()
            if name not in existing_regions
        ]
        new_categories = [
            Category(category_id=category_id, category_name=name)
            for name, category_id in categories.items()
            if name not in existing_categories
        ]
        new_stores = [
            Store(store_id=store_id, region_id=region_id)
            for store_id, region_id in stores.items()
            if store_id not in existing_stores
        ]
        new_products = [
            Product(product_id=product_id, category_id=category_id)
            for product_id, category_id in products.items()
            if product_id not in existing_products
        ]

        with self.session() as db:
            db.add_all(new_regions + new_categories)
            db.flush()
            db.add_all(new_stores + new_products)

        counts = {
            "regions": len(new_regions),
            "stores": len(new_stores),
            "categories": len(new_categories),
            "products": len(new_products),
        }
        logger.info("Dimensions persisted", **counts)
        return counts

    def append_facts(self, rows: Sequence[Mapping[str, Any]], chunk_size: int = 1000) -> int:
        """Append coerced fact rows in chunks. Returns rows inserted."""
        if not rows:
            return 0

        table = InventoryTransaction.__table__
        total_inserted = 0
        with self.session() as db:
            for i in range(0, len(rows), chunk_size):
                chunk = [dict(row) for row in rows[i:i + chunk_size]]
                db.execute(table.insert(), chunk)
                total_inserted += len(chunk)

        logger.info(f"Inserted {total_inserted} records into {table.name}")
        return total_inserted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def fact_count(self) -> int:
        with self.session() as db:
            return db.execute(select(func.count()).select_from(InventoryTransaction)).scalar_one()

    def fact_frame(self) -> pl.DataFrame:
        """Full fact table as a DataFrame, in insertion order"""
        table = InventoryTransaction.__table__
        columns = [table.c[name] for name in FACT_SCHEMA]
        with self.session() as db:
            rows = db.execute(select(*columns).order_by(table.c.transaction_id)).all()
        return pl.DataFrame(
            [dict(row._mapping) for row in rows],
            schema=FACT_SCHEMA,
        )

    def region_frame(self) -> pl.DataFrame:
        return _mapping_frame(self.region_ids(), REGION_SCHEMA, key_first=False)

    def category_frame(self) -> pl.DataFrame:
        return _mapping_frame(self.category_ids(), CATEGORY_SCHEMA, key_first=False)

    def store_frame(self) -> pl.DataFrame:
        return _mapping_frame(self.store_regions(), STORE_SCHEMA)

    def product_frame(self) -> pl.DataFrame:
        return _mapping_frame(self.product_categories(), PRODUCT_SCHEMA)

    def dispose(self) -> None:
        """Close all pooled connections"""
        self.engine.dispose()


def _mapping_frame(
    mapping: Mapping[Any, Any],
    schema: Dict[str, pl.DataType],
    key_first: bool = True,
) -> pl.DataFrame:
    """Two-column frame from a mapping; name -> id mappings are flipped to id, name."""
    first, second = list(schema)
    if key_first:
        records: List[Dict[str, Any]] = [{first: k, second: v} for k, v in mapping.items()]
    else:
        records = [{first: v, second: k} for k, v in mapping.items()]
    return pl.DataFrame(records, schema=schema)
