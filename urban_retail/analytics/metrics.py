"""
Inventory Metrics Engine

Nine reporting aggregates over the inventory fact table:
- Inventory totals by store and region
- Reorder alerts
- Stockout rate
- Turnover rate
- Fast/slow-moving classification
- Overstock detection
- Weather impact on sales
- Forecast accuracy
- Low-sales-day counts

Every metric is a pure function of the current fact table. Results are
unrounded; rounding happens in the report assembler.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

import polars as pl
import structlog

from urban_retail.config import MetricThresholds, get_settings
from urban_retail.database.warehouse import (
    CATEGORY_SCHEMA,
    FACT_SCHEMA,
    PRODUCT_SCHEMA,
    REGION_SCHEMA,
    STORE_SCHEMA,
    InventoryWarehouse,
)

logger = structlog.get_logger(__name__)

FAST_MOVING = "Fast-Moving"
SLOW_MOVING = "Slow-Moving"

PRODUCT_STORE = ["product_id", "store_id"]


def _sorted(df: pl.DataFrame, by: List[str], descending: List[bool]) -> pl.DataFrame:
    return df.sort(by, descending=descending, nulls_last=True)


class MetricsEngine:
    """
    Computes inventory KPIs from the fact table and its dimensions.

    Example:
        engine = MetricsEngine.from_warehouse(warehouse)
        alerts = engine.reorder_alerts()
        tables = engine.compute_all()
    """

    METRICS = [
        "inventory_by_store",
        "reorder_alerts",
        "stockout_rate",
        "turnover_rate",
        "movement_classification",
        "overstock",
        "weather_impact",
        "forecast_accuracy",
        "low_sales_days",
    ]

    def __init__(
        self,
        facts: pl.DataFrame,
        stores: Optional[pl.DataFrame] = None,
        regions: Optional[pl.DataFrame] = None,
        products: Optional[pl.DataFrame] = None,
        categories: Optional[pl.DataFrame] = None,
        thresholds: Optional[MetricThresholds] = None,
    ):
        self.facts = facts
        self.stores = stores if stores is not None else pl.DataFrame(schema=STORE_SCHEMA)
        self.regions = regions if regions is not None else pl.DataFrame(schema=REGION_SCHEMA)
        self.products = products if products is not None else pl.DataFrame(schema=PRODUCT_SCHEMA)
        self.categories = categories if categories is not None else pl.DataFrame(schema=CATEGORY_SCHEMA)
        self.thresholds = thresholds or get_settings().metrics

    @classmethod
    def from_warehouse(
        cls,
        warehouse: InventoryWarehouse,
        thresholds: Optional[MetricThresholds] = None,
    ) -> "MetricsEngine":
        """Snapshot the warehouse's current contents into an engine"""
        return cls(
            facts=warehouse.fact_frame(),
            stores=warehouse.store_frame(),
            regions=warehouse.region_frame(),
            products=warehouse.product_frame(),
            categories=warehouse.category_frame(),
            thresholds=thresholds,
        )

    @property
    def fact_count(self) -> int:
        return len(self.facts)

    def _product_store_stats(self) -> pl.DataFrame:
        """Per (product, store) aggregates shared by several metrics"""
        return self.facts.group_by(PRODUCT_STORE).agg([
            pl.len().cast(pl.Int64).alias("total_days"),
            pl.col("units_sold").sum().cast(pl.Int64).alias("total_units_sold"),
            pl.col("units_sold").mean().alias("avg_daily_sales"),
            pl.col("inventory_level").max().cast(pl.Int64).alias("current_inventory"),
            pl.col("inventory_level").mean().alias("avg_inventory"),
            pl.col("demand_forecast").mean().alias("avg_forecast"),
            (pl.col("inventory_level") == 0).sum().cast(pl.Int64).alias("stockout_days"),
            (pl.col("units_sold") < self.thresholds.low_sales_threshold)
            .sum().cast(pl.Int64).alias("low_sales_days"),
        ])

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def inventory_by_store(self) -> pl.DataFrame:
        """Total and average inventory level per store and region"""
        df = (
            self.facts
            .join(self.stores, on="store_id", how="inner")
            .join(self.regions, on="region_id", how="inner")
            .group_by(["store_id", "region_name"])
            .agg([
                pl.col("inventory_level").sum().cast(pl.Int64).alias("total_inventory"),
                pl.col("inventory_level").mean().alias("avg_inventory"),
            ])
        )
        return _sorted(df, ["store_id", "region_name"], [False, False])

    def reorder_alerts(self) -> pl.DataFrame:
        """Groups whose peak inventory is below mean daily sales x reorder multiplier"""
        df = (
            self._product_store_stats()
            .with_columns(
                (pl.col("avg_daily_sales") * self.thresholds.reorder_multiplier).alias("reorder_point")
            )
            .filter(pl.col("current_inventory") < pl.col("reorder_point"))
            .select(PRODUCT_STORE + ["current_inventory", "avg_daily_sales", "reorder_point"])
        )
        return _sorted(df, ["reorder_point"] + PRODUCT_STORE, [True, False, False])

    def stockout_rate(self) -> pl.DataFrame:
        """Percentage of observed days with zero inventory"""
        df = (
            self._product_store_stats()
            .with_columns(
                (pl.col("stockout_days") * 100.0 / pl.col("total_days")).alias("stockout_rate_percent")
            )
            .select(PRODUCT_STORE + ["stockout_days", "total_days", "stockout_rate_percent"])
        )
        return _sorted(df, ["stockout_rate_percent"] + PRODUCT_STORE, [True, False, False])

    def turnover_rate(self) -> pl.DataFrame:
        """Units sold over average inventory; null where average inventory is zero"""
        df = (
            self._product_store_stats()
            .with_columns(
                pl.when(pl.col("avg_inventory") == 0)
                .then(pl.lit(None, dtype=pl.Float64))
                .otherwise(pl.col("total_units_sold") / pl.col("avg_inventory"))
                .alias("turnover_rate")
            )
            .select(PRODUCT_STORE + ["total_units_sold", "avg_inventory", "turnover_rate"])
        )
        undefined = df.filter(pl.col("turnover_rate").is_null()).height
        if undefined:
            logger.warning("Turnover undefined for zero-inventory groups", groups=undefined)
        return _sorted(df, ["turnover_rate"] + PRODUCT_STORE, [True, False, False])

    def movement_classification(self) -> pl.DataFrame:
        """Fast-Moving when total units sold strictly exceeds the threshold"""
        df = (
            self.facts
            .join(self.products, on="product_id", how="inner")
            .join(self.categories, on="category_id", how="inner")
            .group_by(["product_id", "category_name"])
            .agg(pl.col("units_sold").sum().cast(pl.Int64).alias("total_units_sold"))
            .with_columns(
                pl.when(pl.col("total_units_sold") > self.thresholds.fast_moving_threshold)
                .then(pl.lit(FAST_MOVING))
                .otherwise(pl.lit(SLOW_MOVING))
                .alias("product_type")
            )
        )
        return _sorted(df, ["total_units_sold", "product_id"], [True, False])

    def overstock(self) -> pl.DataFrame:
        """High average inventory combined with low total sales"""
        df = (
            self._product_store_stats()
            .filter(
                (pl.col("avg_inventory") > self.thresholds.overstock_inventory_threshold)
                & (pl.col("total_units_sold") < self.thresholds.overstock_sales_threshold)
            )
            .select(PRODUCT_STORE + ["avg_inventory", "total_units_sold"])
        )
        return _sorted(df, PRODUCT_STORE, [False, False])

    def weather_impact(self) -> pl.DataFrame:
        """Average units sold per weather condition"""
        df = self.facts.group_by("weather_condition").agg(
            pl.col("units_sold").mean().alias("avg_units_sold")
        )
        return _sorted(df, ["weather_condition"], [False])

    def forecast_accuracy(self) -> pl.DataFrame:
        """Mean sold minus mean forecast; positive means under-forecast"""
        df = (
            self._product_store_stats()
            .rename({"avg_daily_sales": "avg_sold"})
            .with_columns((pl.col("avg_sold") - pl.col("avg_forecast")).alias("forecast_accuracy"))
            .select(PRODUCT_STORE + ["avg_forecast", "avg_sold", "forecast_accuracy"])
        )
        return _sorted(df, ["forecast_accuracy"] + PRODUCT_STORE, [True, False, False])

    def low_sales_days(self) -> pl.DataFrame:
        """Observed days and days with units sold below the low-sales threshold"""
        df = self._product_store_stats().select(PRODUCT_STORE + ["total_days", "low_sales_days"])
        return _sorted(df, PRODUCT_STORE, [False, False])

    # -------------------------------------------------------------------------
    # Batch computation
    # -------------------------------------------------------------------------

    def _timed(self, name: str) -> pl.DataFrame:
        metric: Callable[[], pl.DataFrame] = getattr(self, name)
        start = time.perf_counter()
        df = metric()
        logger.debug(
            "Metric computed",
            metric=name,
            rows=len(df),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return df

    def compute_all(self, max_workers: Optional[int] = None) -> Dict[str, pl.DataFrame]:
        """
        Compute every metric.

        Metrics share no mutable state, so with max_workers > 1 they run in a
        thread pool. The returned mapping is always in METRICS order.

        Args:
            max_workers: Thread pool size; None or 1 computes sequentially

        Returns:
            Ordered mapping of metric name to result DataFrame
        """
        logger.info("Computing metrics", facts=self.fact_count, metrics=len(self.METRICS))

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                frames = list(pool.map(self._timed, self.METRICS))
        else:
            frames = [self._timed(name) for name in self.METRICS]

        return dict(zip(self.METRICS, frames))


def empty_fact_frame() -> pl.DataFrame:
    """Fact frame with no rows and the warehouse schema"""
    return pl.DataFrame(schema=FACT_SCHEMA)
