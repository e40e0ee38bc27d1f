"""
Command Line Entry Point

Usage:
    urban-retail report data/raw/retail_store_inventory.csv --export reports/
    urban-retail report data.csv --database sqlite:///warehouse.db --format parquet
    urban-retail generate data/raw/retail_store_inventory.csv --stores 5 --products 20 --days 30
"""

import argparse
import sys
from typing import List, Optional

import structlog

from urban_retail.config import get_settings
from urban_retail.config.logging import configure_logging
from urban_retail.data.generators import InventoryDataGenerator
from urban_retail.database.warehouse import InventoryWarehouse
from urban_retail.exceptions import MissingDimensionField
from urban_retail.ingestion.loader import LoadStatus
from urban_retail.pipeline import InventoryPipeline

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urban-retail",
        description="Retail inventory ETL and KPI reporting",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Load a raw CSV and compute all metrics")
    report.add_argument("csv", nargs="?", default=None, help="Raw inventory CSV (defaults to DATA_RAW_PATH/DATA_RAW_FILE)")
    report.add_argument("--database", default=None, help="SQLAlchemy URL (defaults to DATABASE_URL)")
    report.add_argument("--export", default=None, help="Directory to export report tables to")
    report.add_argument("--format", default=None, choices=["csv", "parquet"], help="Export file format")
    report.add_argument("--workers", type=int, default=None, help="Threads for metric computation")

    generate = subparsers.add_parser("generate", help="Write a synthetic raw inventory CSV")
    generate.add_argument("output", help="Output CSV path")
    generate.add_argument("--stores", type=int, default=5)
    generate.add_argument("--products", type=int, default=20)
    generate.add_argument("--days", type=int, default=30)
    generate.add_argument("--seed", type=int, default=42)

    return parser


def run_report(args: argparse.Namespace) -> int:
    settings = get_settings()
    csv_path = args.csv or f"{settings.data_lake.raw_path}/{settings.data_lake.raw_file}"

    warehouse = InventoryWarehouse(url=args.database)
    pipeline = InventoryPipeline(warehouse=warehouse, max_workers=args.workers)
    try:
        result = pipeline.run_csv(csv_path, export_dir=args.export, export_format=args.format)
    except (FileNotFoundError, MissingDimensionField) as e:
        logger.error("Input file unusable", error=str(e))
        return 2
    finally:
        warehouse.dispose()

    for name, table in result.reports.items():
        print(f"\n== {name} ({len(table)} rows)")
        print(table.head(10))

    if result.load.status == LoadStatus.FAILED:
        logger.error("Load failed", error=result.load.error_message)
        return 1
    if result.load.rows_rejected:
        logger.warning(
            "Rows rejected during load",
            rejected=result.load.rows_rejected,
            rejection_rate=round(result.load.rejection_rate, 2),
            by_kind=result.load.rejections_by_kind(),
        )
    return 0


def run_generate(args: argparse.Namespace) -> int:
    generator = InventoryDataGenerator(
        stores=args.stores,
        products=args.products,
        days=args.days,
        seed=args.seed,
    )
    path = generator.write_csv(args.output)
    print(f"Wrote {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "generate":
        return run_generate(args)
    return run_report(args)


if __name__ == "__main__":
    sys.exit(main())
