"""
Test Suite Configuration
"""
from typing import Any, Callable, Dict, Generator, List

import pytest

from urban_retail.database.warehouse import InventoryWarehouse
from urban_retail.ingestion.loader import WarehouseLoader


BASE_RECORD: Dict[str, Any] = {
    "Date": "2022-01-01",
    "Store ID": "S1",
    "Product ID": "P1",
    "Category": "C1",
    "Region": "R1",
    "Inventory Level": "100",
    "Units Sold": "10",
    "Units Ordered": "20",
    "Demand Forecast": "12.50",
    "Price": "33.50",
    "Discount": "10",
    "Weather Condition": "Sunny",
    "Holiday/Promotion": "0",
    "Competitor Pricing": "29.69",
    "Seasonality": "Winter",
}


@pytest.fixture
def make_record() -> Callable[..., Dict[str, Any]]:
    """Build a raw record with CSV headers; keyword overrides use canonical names"""
    canonical = {
        "date": "Date",
        "store_id": "Store ID",
        "product_id": "Product ID",
        "category": "Category",
        "region": "Region",
        "inventory_level": "Inventory Level",
        "units_sold": "Units Sold",
        "units_ordered": "Units Ordered",
        "demand_forecast": "Demand Forecast",
        "price": "Price",
        "discount": "Discount",
        "weather_condition": "Weather Condition",
        "holiday_promotion": "Holiday/Promotion",
        "competitor_pricing": "Competitor Pricing",
        "seasonality": "Seasonality",
    }

    def _make(**overrides: Any) -> Dict[str, Any]:
        record = dict(BASE_RECORD)
        for key, value in overrides.items():
            record[canonical.get(key, key)] = value
        return record

    return _make


@pytest.fixture
def sample_records(make_record) -> List[Dict[str, Any]]:
    """Two stores in two regions, three products in two categories"""
    return [
        make_record(date="2022-01-01", store_id="S1", product_id="P1", region="North", category="Toys",
                    inventory_level=120, units_sold=10, demand_forecast=12.0, weather_condition="Sunny"),
        make_record(date="2022-01-02", store_id="S1", product_id="P1", region="North", category="Toys",
                    inventory_level=0, units_sold=2, demand_forecast=8.0, weather_condition="Rainy"),
        make_record(date="2022-01-01", store_id="S1", product_id="P2", region="North", category="Groceries",
                    inventory_level=40, units_sold=30, demand_forecast=25.0, weather_condition="Sunny"),
        make_record(date="2022-01-01", store_id="S2", product_id="P1", region="South", category="Toys",
                    inventory_level=200, units_sold=4, demand_forecast=6.0, weather_condition="Cloudy"),
        make_record(date="2022-01-02", store_id="S2", product_id="P3", region="South", category="Groceries",
                    inventory_level=15, units_sold=50, demand_forecast=55.0, weather_condition="Rainy"),
    ]


@pytest.fixture
def warehouse() -> Generator[InventoryWarehouse, None, None]:
    """Fresh in-memory SQLite warehouse"""
    wh = InventoryWarehouse(url="sqlite://")
    yield wh
    wh.dispose()


@pytest.fixture
def loader(warehouse) -> WarehouseLoader:
    return WarehouseLoader(warehouse)


@pytest.fixture
def loaded_warehouse(warehouse, loader, sample_records) -> InventoryWarehouse:
    """Warehouse with sample_records loaded"""
    loader.load(sample_records)
    return warehouse
