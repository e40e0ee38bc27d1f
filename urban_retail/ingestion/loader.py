"""
Warehouse Loader

Loads raw inventory records into the normalized warehouse:
- Dimension rows first, idempotently
- Referential integrity checked in application code before each fact insert
- Field-level type coercion with per-record rejection
- Partial-failure tolerant: bad records are reported, the batch continues
"""

from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import re

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError

from urban_retail.config import get_settings
from urban_retail.database.models import INTEGER_MAX, LABEL_LENGTH
from urban_retail.database.warehouse import InventoryWarehouse
from urban_retail.exceptions import (
    InventoryETLError,
    ReferentialIntegrityError,
    TypeCoercionError,
)
from urban_retail.ingestion.csv_source import read_raw_csv
from urban_retail.transformation.normalizer import (
    FactCandidate,
    NormalizedBatch,
    RecordRejection,
    SchemaNormalizer,
)

logger = structlog.get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"
INTEGER_PATTERN = re.compile(r"[+-]?\d+")
COUNT_FIELDS = ("inventory_level", "units_sold", "units_ordered", "discount")


class LoadStatus(str, Enum):
    """Batch load status"""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class InventoryRecord(BaseModel):
    """Semantic types of one fact row's measures"""

    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    transaction_date: date = Field(alias="date")
    inventory_level: int = Field(ge=0, le=INTEGER_MAX)
    units_sold: int = Field(ge=0, le=INTEGER_MAX)
    units_ordered: int = Field(ge=0, le=INTEGER_MAX)
    demand_forecast: float = Field(ge=0)
    price: float
    discount: int = Field(ge=-INTEGER_MAX, le=INTEGER_MAX)
    weather_condition: Optional[str] = Field(default=None, max_length=LABEL_LENGTH)
    holiday_promotion: Optional[bool] = False
    competitor_pricing: Optional[float] = None
    seasonality: Optional[str] = Field(default=None, max_length=LABEL_LENGTH)

    @field_validator("transaction_date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> date:
        """Dates must be calendar dates in YYYY-MM-DD form"""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        if v is None:
            raise ValueError("date is required")
        try:
            return datetime.strptime(str(v).strip(), DATE_FORMAT).date()
        except ValueError:
            raise ValueError(f"date must match {DATE_FORMAT}, got {v!r}")

    @field_validator(*COUNT_FIELDS, mode="before")
    @classmethod
    def whole_number(cls, v: Any) -> Any:
        """Counts given as text must be plain integers; "10.0" is rejected"""
        if isinstance(v, str) and not INTEGER_PATTERN.fullmatch(v.strip()):
            raise ValueError(f"expected a whole number, got {v!r}")
        return v

    @field_validator(
        "weather_condition", "competitor_pricing", "seasonality", "holiday_promotion",
        mode="before",
    )
    @classmethod
    def blank_as_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("holiday_promotion", mode="after")
    @classmethod
    def default_flag(cls, v: Optional[bool]) -> bool:
        return bool(v)


class LoadResult(BaseModel):
    """Result of a warehouse load operation"""
    source: Optional[str] = None
    status: LoadStatus
    rows_received: int = 0
    rows_inserted: int = 0
    rows_rejected: int = 0
    rejections: List[RecordRejection] = Field(default_factory=list)
    dimensions_added: Dict[str, int] = Field(default_factory=dict)
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def rejection_rate(self) -> float:
        """Percentage of received rows that were rejected"""
        if self.rows_received == 0:
            return 0.0
        return (self.rows_rejected / self.rows_received) * 100

    def rejections_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for rejection in self.rejections:
            counts[rejection.kind] = counts.get(rejection.kind, 0) + 1
        return counts


def coerce_fact_row(candidate: FactCandidate) -> Dict[str, Any]:
    """
    Build an insertable fact row from a normalized candidate.

    Raises:
        TypeCoercionError: if any measure fails to parse into its type
    """
    try:
        record = InventoryRecord.model_validate(candidate.values)
    except ValidationError as e:
        error = e.errors()[0]
        loc = error["loc"][0] if error["loc"] else None
        field_name = "date" if loc in ("date", "transaction_date") else loc
        raise TypeCoercionError(
            f"{field_name}: {error['msg']}",
            row_number=candidate.row_number,
            field=field_name,
            value=candidate.values.get(field_name) if field_name else None,
        ) from e

    row = record.model_dump()
    row["store_id"] = candidate.store_id
    row["product_id"] = candidate.product_id
    return row


def check_references(
    candidate: FactCandidate,
    stores: Mapping[str, int],
    products: Mapping[str, int],
) -> None:
    """
    Raises:
        ReferentialIntegrityError: if the store or product is not a known dimension row
    """
    if candidate.store_id not in stores:
        raise ReferentialIntegrityError(
            f"Unknown store_id {candidate.store_id!r}",
            row_number=candidate.row_number,
            field="store_id",
            value=candidate.store_id,
        )
    if candidate.product_id not in products:
        raise ReferentialIntegrityError(
            f"Unknown product_id {candidate.product_id!r}",
            row_number=candidate.row_number,
            field="product_id",
            value=candidate.product_id,
        )


class WarehouseLoader:
    """
    Raw record loader for the inventory warehouse.

    Example:
        loader = WarehouseLoader(InventoryWarehouse())
        result = loader.load(records)
        result.rows_inserted, result.rows_rejected
    """

    def __init__(
        self,
        warehouse: InventoryWarehouse,
        chunk_size: Optional[int] = None,
    ):
        self.warehouse = warehouse
        self.chunk_size = chunk_size or get_settings().database.insert_chunk_size

    def _seeded_normalizer(self) -> SchemaNormalizer:
        """Normalizer that continues the warehouse's existing id sequences"""
        return SchemaNormalizer(
            regions=self.warehouse.region_ids(),
            categories=self.warehouse.category_ids(),
            stores=self.warehouse.store_regions(),
            products=self.warehouse.product_categories(),
        )

    def load(self, records: Iterable[Mapping[str, Any]], source: Optional[str] = None) -> LoadResult:
        """
        Normalize and load raw records.

        Args:
            records: Raw records, keyed by CSV header or canonical field name
            source: Optional label for the input (file path, table name)

        Returns:
            LoadResult with accepted/rejected counts and rejection reasons
        """
        records = list(records)
        logger.info("Starting warehouse load", source=source, rows=len(records))
        batch = self._seeded_normalizer().normalize(records)
        return self.load_batch(batch, source=source)

    def load_csv(self, file_path: Union[str, Path]) -> LoadResult:
        """Read a raw CSV file and load it"""
        return self.load(read_raw_csv(file_path), source=str(file_path))

    def load_batch(self, batch: NormalizedBatch, source: Optional[str] = None) -> LoadResult:
        """Persist an already-normalized batch"""
        started_at = datetime.now(timezone.utc)
        result = LoadResult(
            source=source,
            status=LoadStatus.RUNNING,
            rows_received=batch.input_rows,
            started_at=started_at,
        )
        rejections: List[RecordRejection] = list(batch.rejections)

        try:
            result.dimensions_added = self.warehouse.add_dimensions(
                regions=batch.regions,
                stores=batch.stores,
                categories=batch.categories,
                products=batch.products,
            )
            known_stores = self.warehouse.store_regions()
            known_products = self.warehouse.product_categories()

            rows: List[Dict[str, Any]] = []
            for candidate in batch.candidates:
                try:
                    check_references(candidate, known_stores, known_products)
                    rows.append(coerce_fact_row(candidate))
                except (ReferentialIntegrityError, TypeCoercionError) as e:
                    self._reject(rejections, e)

            result.rows_inserted = self.warehouse.append_facts(rows, chunk_size=self.chunk_size)
            result.status = LoadStatus.PARTIAL if rejections else LoadStatus.COMPLETED

        except SQLAlchemyError as e:
            result.status = LoadStatus.FAILED
            result.error_message = str(e)
            logger.error("Warehouse load failed", error=str(e), source=source)

        result.rejections = sorted(rejections, key=lambda r: r.row_number or 0)
        result.rows_rejected = len(rejections)
        result.completed_at = datetime.now(timezone.utc)
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()

        logger.info(
            "Warehouse load finished",
            status=result.status.value,
            rows_inserted=result.rows_inserted,
            rows_rejected=result.rows_rejected,
            duration_seconds=result.load_duration_seconds,
        )
        return result

    @staticmethod
    def _reject(rejections: List[RecordRejection], error: InventoryETLError) -> None:
        logger.warning(
            "Record rejected",
            row_number=error.row_number,
            reason=error.kind,
            field=error.field,
            message=error.message,
        )
        rejections.append(RecordRejection.from_error(error))
