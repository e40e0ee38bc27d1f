"""
Unit Tests - Report Assembly
"""
import math

import polars as pl
import pytest

from urban_retail.analytics.metrics import MetricsEngine
from urban_retail.config import MetricThresholds
from urban_retail.reporting.assembler import ReportAssembler, round_half_up


class TestRoundHalfUp:
    """Tests for presentation rounding"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (2.675, 2.68),
            (0.125, 0.13),
            (53.333333, 53.33),
            (-2.675, -2.68),
            (50.0, 50.0),
            (0.005, 0.01),
        ],
    )
    def test_rounds_half_away_from_zero(self, value, expected):
        assert round_half_up(value) == expected

    def test_none_passes_through(self):
        assert round_half_up(None) is None

    @pytest.mark.parametrize("value", [float("inf"), float("-inf")])
    def test_infinity_passes_through(self, value):
        assert round_half_up(value) == value

    def test_nan_passes_through(self):
        assert math.isnan(round_half_up(float("nan")))


class TestReportAssembler:
    """Tests for ReportAssembler"""

    def test_rounds_and_renames(self):
        df = pl.DataFrame({
            "store_id": ["S1"],
            "total_inventory": [160],
            "avg_inventory": [160 / 3],
        })

        result = ReportAssembler().assemble_table(df)

        assert result.columns == ["StoreID", "TotalInventory", "AvgInventory"]
        assert result.row(0) == ("S1", 160, 53.33)

    def test_keeps_null_turnover(self):
        df = pl.DataFrame({"turnover_rate": [0.333333, None]}, schema={"turnover_rate": pl.Float64})

        result = ReportAssembler().assemble_table(df)

        assert result["TurnoverRate"].to_list() == [0.33, None]

    def test_non_finite_values_do_not_abort(self):
        """Infinite averages from frames built outside the loader are kept as-is"""
        df = pl.DataFrame({"forecast_accuracy": [float("-inf"), 1.234]})

        result = ReportAssembler().assemble_table(df)

        assert result["ForecastAccuracy"].to_list() == [float("-inf"), 1.23]

    def test_rename_disabled(self):
        df = pl.DataFrame({"avg_sold": [1.005]})

        result = ReportAssembler(rename_columns=False).assemble_table(df)

        assert result.columns == ["avg_sold"]
        assert result["avg_sold"][0] == 1.01

    def test_assemble_all_metrics(self, loaded_warehouse):
        """Every metric table is assembled in order with dashboard headers"""
        metrics = MetricsEngine.from_warehouse(loaded_warehouse, thresholds=MetricThresholds()).compute_all()

        reports = ReportAssembler().assemble(metrics)

        assert list(reports) == MetricsEngine.METRICS
        assert reports["inventory_by_store"].columns == ["StoreID", "RegionName", "TotalInventory", "AvgInventory"]
        assert reports["inventory_by_store"]["AvgInventory"].to_list() == [53.33, 107.5]
        assert reports["turnover_rate"]["TurnoverRate"].to_list() == [3.33, 0.75, 0.2, 0.02]

    def test_export_csv(self, tmp_path):
        tables = {"weather_impact": pl.DataFrame({"WeatherCondition": ["Sunny"], "AvgUnitsSold": [20.0]})}

        written = ReportAssembler().export(tables, tmp_path, "csv")

        assert written == {"weather_impact": str(tmp_path / "weather_impact.csv")}
        assert pl.read_csv(written["weather_impact"]).row(0) == ("Sunny", 20.0)

    def test_export_parquet(self, tmp_path):
        tables = {"overstock": pl.DataFrame({"ProductID": ["P1"], "TotalUnitsSold": [4]})}

        written = ReportAssembler().export(tables, tmp_path / "out", "parquet")

        df = pl.read_parquet(written["overstock"])
        assert df.columns == ["ProductID", "TotalUnitsSold"]
        assert df["TotalUnitsSold"].to_list() == [4]

    def test_export_rejects_unknown_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported export format"):
            ReportAssembler().export({}, tmp_path, "xlsx")
