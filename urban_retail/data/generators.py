"""
Synthetic Data Generator

Generates raw retail inventory records in the flat CSV layout for demos and
tests: one row per (date, store, product) with inventory, sales, orders,
forecast, pricing, and context columns.
"""

from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import polars as pl
import structlog

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

REGIONS = ["North", "South", "East", "West"]
CATEGORIES = ["Groceries", "Toys", "Electronics", "Furniture", "Clothing"]
WEATHER_CONDITIONS = ["Sunny", "Rainy", "Cloudy", "Snowy"]
SEASONS = {12: "Winter", 1: "Winter", 2: "Winter", 3: "Spring", 4: "Spring", 5: "Spring",
           6: "Summer", 7: "Summer", 8: "Summer", 9: "Autumn", 10: "Autumn", 11: "Autumn"}


class InventoryDataGenerator:
    """
    Reproducible raw inventory dataset generator.

    Example:
        generator = InventoryDataGenerator(stores=5, products=20, days=30)
        df = generator.generate()
        generator.write_csv("data/raw/retail_store_inventory.csv")
    """

    def __init__(
        self,
        stores: int = 5,
        products: int = 20,
        days: int = 30,
        start_date: date = date(2022, 1, 1),
        seed: int = 42,
    ):
        self.stores = stores
        self.products = products
        self.days = days
        self.start_date = start_date
        self.seed = seed

    def _store_ids(self) -> List[str]:
        return [f"S{i:03d}" for i in range(1, self.stores + 1)]

    def _product_ids(self) -> List[str]:
        return [f"P{i:04d}" for i in range(1, self.products + 1)]

    def generate(self) -> pl.DataFrame:
        """Generate the full dataset with raw CSV headers"""
        rng = np.random.default_rng(self.seed)
        store_ids = self._store_ids()
        product_ids = self._product_ids()

        store_region = {s: REGIONS[i % len(REGIONS)] for i, s in enumerate(store_ids)}
        product_category = {p: CATEGORIES[i % len(CATEGORIES)] for i, p in enumerate(product_ids)}
        base_price = dict(zip(product_ids, np.round(rng.uniform(5, 100, len(product_ids)), 2)))

        dates = [self.start_date + timedelta(days=d) for d in range(self.days)]
        n = len(dates) * len(store_ids) * len(product_ids)

        per_day = len(store_ids) * len(product_ids)
        date_col = np.repeat([d.isoformat() for d in dates], per_day)
        season_col = np.repeat([SEASONS[d.month] for d in dates], per_day)
        store_col = np.tile(np.repeat(store_ids, len(product_ids)), len(dates))
        product_col = np.tile(product_ids, len(dates) * len(store_ids))

        demand = rng.gamma(shape=2.0, scale=40.0, size=n)
        units_sold = np.maximum(0, np.round(demand + rng.normal(0, 10, n))).astype(int)
        inventory = rng.integers(0, 500, n)
        # Roughly 5% stockout days
        inventory = np.where(rng.random(n) < 0.05, 0, inventory)
        units_sold = np.where(inventory == 0, 0, units_sold)
        prices = np.array([base_price[p] for p in product_col])
        discount = rng.choice([0, 5, 10, 15, 20], size=n)

        df = pl.DataFrame({
            "Date": date_col,
            "Store ID": store_col,
            "Product ID": product_col,
            "Category": [product_category[p] for p in product_col],
            "Region": [store_region[s] for s in store_col],
            "Inventory Level": inventory,
            "Units Sold": units_sold,
            "Units Ordered": rng.integers(0, 200, n),
            "Demand Forecast": np.round(demand, 2),
            "Price": prices,
            "Discount": discount,
            "Weather Condition": rng.choice(WEATHER_CONDITIONS, size=n),
            "Holiday/Promotion": rng.integers(0, 2, n),
            "Competitor Pricing": np.round(prices * rng.uniform(0.9, 1.1, n), 2),
            "Seasonality": season_col,
        })

        logger.info("Generated inventory dataset", rows=len(df), stores=self.stores, products=self.products)
        return df

    def write_csv(self, path: Optional[Union[str, Path]] = None, df: Optional[pl.DataFrame] = None) -> Path:
        """Generate (unless given a frame) and write the raw CSV"""
        output_file = Path(path or "data/raw/retail_store_inventory.csv")
        output_file.parent.mkdir(parents=True, exist_ok=True)
        (df if df is not None else self.generate()).write_csv(output_file)
        logger.info(f"Written dataset to {output_file}")
        return output_file
