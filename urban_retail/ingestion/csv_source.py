"""
Raw CSV Source

Reads the flat retail inventory CSV with Polars. Every column is read as a
string: type coercion belongs to the loader, where a bad value rejects one
record instead of failing the whole file.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

import polars as pl
import structlog

from urban_retail.exceptions import MissingDimensionField
from urban_retail.transformation.normalizer import RAW_COLUMN_MAP

logger = structlog.get_logger(__name__)

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]
REQUIRED_DIMENSION_COLUMNS = {
    "region": "Region",
    "store_id": "Store ID",
    "category": "Category",
    "product_id": "Product ID",
}


def read_raw_frame(file_path: Union[str, Path], delimiter: str = ",") -> pl.DataFrame:
    """
    Read the raw CSV into an all-string DataFrame with canonical column names.

    Raises:
        FileNotFoundError: if the file does not exist
        MissingDimensionField: if a dimension column is absent from the header
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    df = pl.read_csv(
        file_path,
        separator=delimiter,
        infer_schema_length=0,
        null_values=NULL_VALUES,
    )
    df = df.rename({col: RAW_COLUMN_MAP.get(col.strip(), col.strip()) for col in df.columns})

    missing = [field for field in REQUIRED_DIMENSION_COLUMNS if field not in df.columns]
    if missing:
        raise MissingDimensionField([REQUIRED_DIMENSION_COLUMNS[f] for f in missing])

    logger.info(f"Read {len(df)} rows from file", file=str(file_path), columns=len(df.columns))
    return df


def read_raw_csv(file_path: Union[str, Path], delimiter: str = ",") -> List[Dict[str, Any]]:
    """Read the raw CSV as a list of records keyed by canonical field name"""
    return read_raw_frame(file_path, delimiter=delimiter).to_dicts()
