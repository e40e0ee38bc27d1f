"""
Report Assembler

Shapes metric tables for the dashboard: half-up rounding to two decimals,
presentation column headers, and optional flat-file export. No aggregation
happens here.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import polars as pl
import structlog

from urban_retail.config import get_settings

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")

COLUMN_HEADERS: Dict[str, str] = {
    "store_id": "StoreID",
    "product_id": "ProductID",
    "region_name": "RegionName",
    "category_name": "CategoryName",
    "weather_condition": "WeatherCondition",
    "total_inventory": "TotalInventory",
    "avg_inventory": "AvgInventory",
    "current_inventory": "CurrentInventory",
    "avg_daily_sales": "AvgDailySales",
    "reorder_point": "ReorderPoint",
    "stockout_days": "StockoutDays",
    "total_days": "TotalDays",
    "stockout_rate_percent": "StockoutRatePercent",
    "total_units_sold": "TotalUnitsSold",
    "turnover_rate": "TurnoverRate",
    "product_type": "ProductType",
    "avg_units_sold": "AvgUnitsSold",
    "avg_forecast": "AvgForecast",
    "avg_sold": "AvgSold",
    "forecast_accuracy": "ForecastAccuracy",
    "low_sales_days": "LowSalesDays",
}


def round_half_up(value: Optional[float], places: Decimal = TWO_PLACES) -> Optional[float]:
    """Round half away from zero on the value's decimal representation"""
    if value is None or not math.isfinite(value):
        return value
    return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


class ReportAssembler:
    """
    Presentation shaping for metric tables.

    Example:
        assembler = ReportAssembler()
        tables = assembler.assemble(engine.compute_all())
        assembler.export(tables, "reports/")
    """

    def __init__(self, rename_columns: bool = True):
        self.rename_columns = rename_columns

    def assemble_table(self, df: pl.DataFrame) -> pl.DataFrame:
        """Round float columns and apply presentation headers"""
        float_columns = [
            name for name, dtype in zip(df.columns, df.dtypes)
            if dtype in (pl.Float32, pl.Float64)
        ]
        # Decimal half-up per cell: round() and Expr.round work on the binary
        # float, so 2.675 would come out as 2.67
        if float_columns:
            df = df.with_columns([
                pl.col(name).map_elements(round_half_up, return_dtype=pl.Float64).alias(name)
                for name in float_columns
            ])
        if self.rename_columns:
            df = df.rename({c: COLUMN_HEADERS[c] for c in df.columns if c in COLUMN_HEADERS})
        return df

    def assemble(self, metrics: Mapping[str, pl.DataFrame]) -> Dict[str, pl.DataFrame]:
        """Assemble every metric table, preserving order"""
        return {name: self.assemble_table(df) for name, df in metrics.items()}

    def export(
        self,
        tables: Mapping[str, pl.DataFrame],
        output_dir: Optional[Union[str, Path]] = None,
        file_format: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Write each table to <output_dir>/<metric>.<format>.

        Args:
            tables: Assembled tables keyed by metric name
            output_dir: Target directory (defaults to DATA_CURATED_PATH)
            file_format: "csv" or "parquet" (defaults to DATA_EXPORT_FORMAT)

        Returns:
            Metric name -> written file path
        """
        settings = get_settings()
        output_path = Path(output_dir or settings.data_lake.curated_path)
        file_format = (file_format or settings.data_lake.export_format).lower()
        if file_format not in ("csv", "parquet"):
            raise ValueError(f"Unsupported export format: {file_format}")

        output_path.mkdir(parents=True, exist_ok=True)
        written: Dict[str, str] = {}

        for name, df in tables.items():
            output_file = output_path / f"{name}.{file_format}"
            if file_format == "csv":
                df.write_csv(output_file)
            else:
                df.write_parquet(output_file)
            written[name] = str(output_file)

        logger.info(
            f"Written {len(written)} report tables to {output_path}",
            format=file_format,
            exported_at=datetime.now().isoformat(timespec="seconds"),
        )
        return written
