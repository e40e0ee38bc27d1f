"""
Schema Normalizer

Splits flat retail inventory records into the four dimension sets (Region,
Store, Category, Product) and a stream of fact candidates that reference
dimensions by id.

Ids for regions and categories are handed out sequentially in first-seen
order, so the same input always produces the same ids.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from urban_retail.database.models import KEY_LENGTH, LABEL_LENGTH
from urban_retail.exceptions import InventoryETLError, MissingDimensionField, TypeCoercionError

logger = structlog.get_logger(__name__)


# Raw CSV header -> canonical field name
RAW_COLUMN_MAP: Dict[str, str] = {
    "Date": "date",
    "Store ID": "store_id",
    "Product ID": "product_id",
    "Category": "category",
    "Region": "region",
    "Inventory Level": "inventory_level",
    "Units Sold": "units_sold",
    "Units Ordered": "units_ordered",
    "Demand Forecast": "demand_forecast",
    "Price": "price",
    "Discount": "discount",
    "Weather Condition": "weather_condition",
    "Holiday/Promotion": "holiday_promotion",
    "Competitor Pricing": "competitor_pricing",
    "Seasonality": "seasonality",
}

DIMENSION_FIELDS = ["region", "store_id", "category", "product_id"]
DIMENSION_LENGTHS = {
    "region": LABEL_LENGTH,
    "store_id": KEY_LENGTH,
    "category": LABEL_LENGTH,
    "product_id": KEY_LENGTH,
}
MEASURE_FIELDS = [
    name for name in RAW_COLUMN_MAP.values()
    if name not in ("region", "category", "store_id", "product_id")
]


def canonicalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Map raw CSV headers to canonical field names; canonical keys pass through."""
    return {RAW_COLUMN_MAP.get(key, key): value for key, value in record.items()}


def _dimension_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class RecordRejection:
    """A record excluded from the fact table, with the reason"""
    row_number: Optional[int]
    kind: str
    message: str
    field: Optional[str] = None

    @classmethod
    def from_error(cls, error: InventoryETLError) -> "RecordRejection":
        return cls(
            row_number=error.row_number,
            kind=error.kind,
            message=error.message,
            field=error.field,
        )


@dataclass
class FactCandidate:
    """Normalized record: dimension ids resolved, measures still raw"""
    row_number: int
    store_id: str
    product_id: str
    region_id: int
    category_id: int
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedBatch:
    """Output of one normalization pass"""
    regions: Dict[str, int]
    stores: Dict[str, int]
    categories: Dict[str, int]
    products: Dict[str, int]
    candidates: List[FactCandidate] = field(default_factory=list)
    rejections: List[RecordRejection] = field(default_factory=list)

    @property
    def input_rows(self) -> int:
        return len(self.candidates) + len(self.rejections)


class SchemaNormalizer:
    """
    Dimension deduplication for raw inventory records.

    A normalizer may be seeded with the dimension maps already stored in the
    warehouse; ids then continue from the highest known id and existing values
    are reused, never recreated.

    Example:
        normalizer = SchemaNormalizer()
        batch = normalizer.normalize(records)
        batch.regions  # {"North": 1, "South": 2}
    """

    def __init__(
        self,
        regions: Optional[Mapping[str, int]] = None,
        categories: Optional[Mapping[str, int]] = None,
        stores: Optional[Mapping[str, int]] = None,
        products: Optional[Mapping[str, int]] = None,
    ):
        self.regions: Dict[str, int] = dict(regions or {})
        self.categories: Dict[str, int] = dict(categories or {})
        self.stores: Dict[str, int] = dict(stores or {})
        self.products: Dict[str, int] = dict(products or {})

    @staticmethod
    def _assign(mapping: Dict[str, int], name: str) -> int:
        """Return the id for name, assigning the next sequential id on first sight"""
        if name not in mapping:
            mapping[name] = max(mapping.values(), default=0) + 1
        return mapping[name]

    def _attach(self, mapping: Dict[str, int], key: str, parent_id: int, kind: str, row_number: int) -> None:
        existing = mapping.setdefault(key, parent_id)
        if existing != parent_id:
            logger.warning(
                f"Conflicting {kind} assignment ignored",
                key=key,
                kept=existing,
                ignored=parent_id,
                row_number=row_number,
            )

    def normalize_record(self, record: Mapping[str, Any], row_number: int) -> FactCandidate:
        """
        Normalize a single record.

        Raises:
            MissingDimensionField: if Region, Store ID, Category or Product ID
                is absent or blank
            TypeCoercionError: if a dimension value is longer than its column
        """
        canonical = canonicalize_record(record)
        dims = {name: _dimension_value(canonical.get(name)) for name in DIMENSION_FIELDS}
        missing = [name for name in DIMENSION_FIELDS if dims[name] is None]
        if missing:
            raise MissingDimensionField(missing, row_number=row_number)
        for name in DIMENSION_FIELDS:
            if len(dims[name]) > DIMENSION_LENGTHS[name]:
                raise TypeCoercionError(
                    f"{name} longer than {DIMENSION_LENGTHS[name]} characters",
                    row_number=row_number,
                    field=name,
                    value=dims[name],
                )

        region_id = self._assign(self.regions, dims["region"])
        category_id = self._assign(self.categories, dims["category"])
        self._attach(self.stores, dims["store_id"], region_id, "store region", row_number)
        self._attach(self.products, dims["product_id"], category_id, "product category", row_number)

        return FactCandidate(
            row_number=row_number,
            store_id=dims["store_id"],
            product_id=dims["product_id"],
            region_id=region_id,
            category_id=category_id,
            values={name: canonical.get(name) for name in MEASURE_FIELDS},
        )

    def normalize(self, records: Iterable[Mapping[str, Any]]) -> NormalizedBatch:
        """Normalize a record stream; invalid records become rejections"""
        candidates: List[FactCandidate] = []
        rejections: List[RecordRejection] = []

        for row_number, record in enumerate(records, start=1):
            try:
                candidates.append(self.normalize_record(record, row_number))
            except (MissingDimensionField, TypeCoercionError) as e:
                logger.warning("Record rejected", row_number=row_number, reason=e.kind, message=e.message)
                rejections.append(RecordRejection.from_error(e))

        logger.info(
            "Normalization complete",
            candidates=len(candidates),
            rejected=len(rejections),
            regions=len(self.regions),
            stores=len(self.stores),
            categories=len(self.categories),
            products=len(self.products),
        )

        return NormalizedBatch(
            regions=dict(self.regions),
            stores=dict(self.stores),
            categories=dict(self.categories),
            products=dict(self.products),
            candidates=candidates,
            rejections=rejections,
        )
