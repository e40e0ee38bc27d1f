"""
Error Taxonomy

Per-record load errors. None of these is fatal to a batch: the loader turns
them into rejections and keeps going.
"""

from typing import Any, Optional, Sequence


class InventoryETLError(Exception):
    """Base class for all load-time record errors"""

    kind = "inventory_etl_error"

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.row_number = row_number
        self.field = field
        self.value = value


class MissingDimensionField(InventoryETLError):
    """A raw record lacks Region, Store ID, Category, or Product ID"""

    kind = "missing_dimension_field"

    def __init__(self, fields: Sequence[str], row_number: Optional[int] = None):
        self.fields = list(fields)
        super().__init__(
            f"Missing required dimension field(s): {', '.join(self.fields)}",
            row_number=row_number,
            field=self.fields[0] if self.fields else None,
        )


class ReferentialIntegrityError(InventoryETLError):
    """A fact candidate references a store or product that does not exist"""

    kind = "referential_integrity"


class TypeCoercionError(InventoryETLError):
    """A field could not be parsed into its semantic type"""

    kind = "type_coercion"
