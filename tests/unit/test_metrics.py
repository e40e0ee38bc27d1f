"""
Unit Tests - Metrics Engine
"""
from datetime import date, timedelta

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from urban_retail.analytics.metrics import (
    FAST_MOVING,
    SLOW_MOVING,
    MetricsEngine,
    empty_fact_frame,
)
from urban_retail.config import MetricThresholds
from urban_retail.database.warehouse import FACT_SCHEMA
from urban_retail.pipeline import InventoryPipeline


DEFAULT_THRESHOLDS = MetricThresholds(
    reorder_multiplier=3.0,
    fast_moving_threshold=1000,
    overstock_inventory_threshold=100,
    overstock_sales_threshold=500,
    low_sales_threshold=5,
)

PRODUCT_STORE_COLUMNS = ["product_id", "store_id"]


def _facts(rows):
    """Fact frame from partial rows; unspecified measures get neutral values"""
    defaults = {
        "store_id": "S1",
        "product_id": "P1",
        "inventory_level": 100,
        "units_sold": 10,
        "units_ordered": 0,
        "demand_forecast": 10.0,
        "price": 10.0,
        "discount": 0,
        "competitor_pricing": None,
        "weather_condition": "Sunny",
        "holiday_promotion": False,
        "seasonality": "Winter",
    }
    records = []
    for i, row in enumerate(rows, start=1):
        record = dict(defaults, transaction_id=i, transaction_date=date(2022, 1, 1) + timedelta(days=i))
        record.update(row)
        records.append(record)
    return pl.DataFrame(records, schema=FACT_SCHEMA)


def _engine(rows, thresholds=DEFAULT_THRESHOLDS):
    return MetricsEngine(
        facts=_facts(rows),
        stores=pl.DataFrame({"store_id": ["S1", "S2"], "region_id": [1, 2]}),
        regions=pl.DataFrame({"region_id": [1, 2], "region_name": ["North", "South"]}),
        products=pl.DataFrame({"product_id": ["P1", "P2"], "category_id": [1, 1]}),
        categories=pl.DataFrame({"category_id": [1], "category_name": ["Toys"]}),
        thresholds=thresholds,
    )


@pytest.fixture
def sample_engine(loaded_warehouse):
    return MetricsEngine.from_warehouse(loaded_warehouse, thresholds=DEFAULT_THRESHOLDS)


class TestMetricScenarios:
    """Single-group scenarios with hand-computed results"""

    def test_stockout_rate_half(self):
        """Two zero-inventory days out of four is 50 percent"""
        engine = _engine([{"inventory_level": v} for v in (0, 5, 0, 5)])

        result = engine.stockout_rate()

        assert result.height == 1
        assert result["stockout_days"][0] == 2
        assert result["total_days"][0] == 4
        assert result["stockout_rate_percent"][0] == pytest.approx(50.0)

    def test_stockout_rate_all_days(self):
        """Zero inventory on every observed day is 100 percent"""
        engine = _engine([{"inventory_level": 0} for _ in range(3)])

        result = engine.stockout_rate()

        assert result["stockout_days"][0] == 3
        assert result["stockout_rate_percent"][0] == pytest.approx(100.0)

    def test_inventory_by_store(self):
        """Sum and mean of inventory levels per store"""
        engine = _engine([{"inventory_level": 2}, {"inventory_level": 3}])

        result = engine.inventory_by_store()

        assert result.to_dicts() == [
            {"store_id": "S1", "region_name": "North", "total_inventory": 5, "avg_inventory": 2.5}
        ]

    def test_reorder_alert_fires(self):
        """Peak inventory 50 is below mean sales 20 x 3"""
        engine = _engine([
            {"units_sold": 10, "inventory_level": 50},
            {"units_sold": 20, "inventory_level": 40},
            {"units_sold": 30, "inventory_level": 30},
        ])

        result = engine.reorder_alerts()

        assert result.height == 1
        assert result["current_inventory"][0] == 50
        assert result["avg_daily_sales"][0] == pytest.approx(20.0)
        assert result["reorder_point"][0] == pytest.approx(60.0)

    def test_reorder_alert_not_fired_at_equality(self):
        """Inventory equal to the reorder point is not an alert"""
        engine = _engine([{"units_sold": 20, "inventory_level": 60}])

        assert engine.reorder_alerts().height == 0

    def test_turnover_null_when_inventory_zero(self):
        """Zero average inventory gives a null turnover, not an error"""
        engine = _engine([
            {"product_id": "P1", "inventory_level": 0, "units_sold": 3},
            {"product_id": "P2", "inventory_level": 10, "units_sold": 5},
        ])

        result = engine.turnover_rate()

        assert result["product_id"].to_list() == ["P2", "P1"]
        assert result["turnover_rate"][0] == pytest.approx(0.5)
        assert result["turnover_rate"][1] is None

    def test_fast_moving_boundary(self):
        """Exactly the threshold is still slow-moving"""
        engine = _engine([
            {"product_id": "P1", "units_sold": 1000},
            {"product_id": "P2", "units_sold": 1001},
        ])

        result = engine.movement_classification()

        assert result.select(["product_id", "product_type"]).rows() == [
            ("P2", FAST_MOVING),
            ("P1", SLOW_MOVING),
        ]

    def test_low_sales_strictly_below_threshold(self):
        """Five units sold is not a low-sales day"""
        engine = _engine([{"units_sold": v} for v in (4, 5, 0)])

        result = engine.low_sales_days()

        assert result["total_days"][0] == 3
        assert result["low_sales_days"][0] == 2

    def test_forecast_accuracy_sign(self):
        """Positive accuracy means demand was under-forecast"""
        engine = _engine([{"units_sold": 12, "demand_forecast": 10.0}])

        result = engine.forecast_accuracy()

        assert result["forecast_accuracy"][0] == pytest.approx(2.0)

    def test_thresholds_override(self):
        """Thresholds come from the supplied configuration"""
        thresholds = MetricThresholds(reorder_multiplier=1.0, fast_moving_threshold=5, low_sales_threshold=11)
        engine = _engine([{"units_sold": 10, "inventory_level": 9}], thresholds=thresholds)

        assert engine.reorder_alerts()["reorder_point"][0] == pytest.approx(10.0)
        assert engine.movement_classification()["product_type"][0] == FAST_MOVING
        assert engine.low_sales_days()["low_sales_days"][0] == 1

    def test_facts_without_dimensions_skipped_by_joins(self):
        """Facts whose store has no region row do not appear in store totals"""
        engine = _engine([{"store_id": "S9"}])

        assert engine.inventory_by_store().height == 0
        assert engine.stockout_rate().height == 1


class TestLoadedScenario:
    """Raw records through the loader and the full reporting cycle"""

    def test_two_day_stockout_and_store_totals(self, warehouse, make_record):
        records = [
            make_record(date="2022-01-01", store_id="S1", product_id="P1", region="R1", category="C1",
                        inventory_level="0", units_sold="10"),
            make_record(date="2022-01-02", store_id="S1", product_id="P1", region="R1", category="C1",
                        inventory_level="5", units_sold="0"),
        ]

        result = InventoryPipeline(warehouse=warehouse, thresholds=DEFAULT_THRESHOLDS).run(records)

        assert result.load.rows_inserted == 2
        assert result.reports["stockout_rate"].select(
            ["ProductID", "StoreID", "StockoutDays", "TotalDays", "StockoutRatePercent"]
        ).rows() == [("P1", "S1", 1, 2, 50.0)]
        assert result.reports["inventory_by_store"].rows() == [("S1", "R1", 5, 2.5)]

    def test_all_days_stocked_out(self, warehouse, make_record):
        records = [make_record(date=f"2022-01-0{d}", inventory_level="0", units_sold="0") for d in (1, 2, 3)]

        result = InventoryPipeline(warehouse=warehouse, thresholds=DEFAULT_THRESHOLDS).run(records)

        assert result.reports["stockout_rate"]["StockoutRatePercent"].to_list() == [100.0]


class TestSampleMetrics:
    """All metrics over the shared sample dataset"""

    def test_inventory_by_store(self, sample_engine):
        result = sample_engine.inventory_by_store()

        assert result["store_id"].to_list() == ["S1", "S2"]
        assert result["region_name"].to_list() == ["North", "South"]
        assert result["total_inventory"].to_list() == [160, 215]
        assert result["avg_inventory"].to_list() == pytest.approx([160 / 3, 107.5])

    def test_reorder_alerts(self, sample_engine):
        result = sample_engine.reorder_alerts()

        assert result.select(PRODUCT_STORE_COLUMNS).rows() == [("P3", "S2"), ("P2", "S1")]
        assert result["reorder_point"].to_list() == pytest.approx([150.0, 90.0])
        assert result["current_inventory"].to_list() == [15, 40]

    def test_stockout_rate(self, sample_engine):
        result = sample_engine.stockout_rate()

        assert result.select(PRODUCT_STORE_COLUMNS).rows() == [
            ("P1", "S1"), ("P1", "S2"), ("P2", "S1"), ("P3", "S2"),
        ]
        assert result["stockout_rate_percent"].to_list() == pytest.approx([50.0, 0.0, 0.0, 0.0])

    def test_turnover_rate(self, sample_engine):
        result = sample_engine.turnover_rate()

        assert result.select(PRODUCT_STORE_COLUMNS).rows() == [
            ("P3", "S2"), ("P2", "S1"), ("P1", "S1"), ("P1", "S2"),
        ]
        assert result["turnover_rate"].to_list() == pytest.approx([50 / 15, 0.75, 0.2, 0.02])

    def test_movement_classification(self, sample_engine):
        result = sample_engine.movement_classification()

        assert result.rows() == [
            ("P3", "Groceries", 50, SLOW_MOVING),
            ("P2", "Groceries", 30, SLOW_MOVING),
            ("P1", "Toys", 16, SLOW_MOVING),
        ]

    def test_overstock(self, sample_engine):
        result = sample_engine.overstock()

        assert result.rows() == [("P1", "S2", 200.0, 4)]

    def test_weather_impact(self, sample_engine):
        result = sample_engine.weather_impact()

        assert result["weather_condition"].to_list() == ["Cloudy", "Rainy", "Sunny"]
        assert result["avg_units_sold"].to_list() == pytest.approx([4.0, 26.0, 20.0])

    def test_forecast_accuracy(self, sample_engine):
        result = sample_engine.forecast_accuracy()

        assert result.select(PRODUCT_STORE_COLUMNS).rows() == [
            ("P2", "S1"), ("P1", "S2"), ("P1", "S1"), ("P3", "S2"),
        ]
        assert result["forecast_accuracy"].to_list() == pytest.approx([5.0, -2.0, -4.0, -5.0])

    def test_low_sales_days(self, sample_engine):
        result = sample_engine.low_sales_days()

        assert result.rows() == [
            ("P1", "S1", 2, 1),
            ("P1", "S2", 1, 1),
            ("P2", "S1", 1, 0),
            ("P3", "S2", 1, 0),
        ]


class TestComputeAll:
    """Tests for batch metric computation"""

    def test_all_metrics_in_order(self, sample_engine):
        tables = sample_engine.compute_all()

        assert list(tables) == MetricsEngine.METRICS

    def test_parallel_matches_sequential(self, sample_engine):
        """Thread pool results are identical to sequential results"""
        sequential = sample_engine.compute_all()
        parallel = sample_engine.compute_all(max_workers=4)

        assert list(parallel) == list(sequential)
        for name in sequential:
            assert_frame_equal(parallel[name], sequential[name])

    def test_deterministic(self, loaded_warehouse):
        """Two engines over the same warehouse agree exactly"""
        first = MetricsEngine.from_warehouse(loaded_warehouse, thresholds=DEFAULT_THRESHOLDS).compute_all()
        second = MetricsEngine.from_warehouse(loaded_warehouse, thresholds=DEFAULT_THRESHOLDS).compute_all()

        for name in first:
            assert_frame_equal(first[name], second[name])

    def test_empty_fact_table(self):
        """No facts gives empty tables, never an error"""
        engine = MetricsEngine(facts=empty_fact_frame(), thresholds=DEFAULT_THRESHOLDS)

        tables = engine.compute_all()

        assert len(tables) == len(MetricsEngine.METRICS)
        assert all(df.height == 0 for df in tables.values())
