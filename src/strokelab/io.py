from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import polars as pl

from .base import _require_columns

logger = logging.getLogger(__name__)

STROKE_SCHEMA: Dict[str, pl.DataType] = {
    "id": pl.Int64,
    "gender": pl.Utf8,
    "age": pl.Float64,
    "hypertension": pl.Int64,
    "heart_disease": pl.Int64,
    "ever_married": pl.Utf8,
    "work_type": pl.Utf8,
    "Residence_type": pl.Utf8,
    "avg_glucose_level": pl.Float64,
    "bmi": pl.Float64,
    "smoking_status": pl.Utf8,
    "stroke": pl.Int64,
}

BINARY_COLUMNS: List[str] = ["hypertension", "heart_disease", "stroke"]

# Tokens the public release uses for absent values
MISSING_TOKENS: Dict[str, str] = {
    "bmi": "N/A",
    "smoking_status": "Unknown",
}


def coerce_binary_columns(df: pl.DataFrame, columns: List[str] = BINARY_COLUMNS) -> pl.DataFrame:
    """Cast 0/1 integer flags to categorical ("0"/"1")."""
    _require_columns(df, columns)
    return df.with_columns(
        [pl.col(c).cast(pl.Int64).cast(pl.Utf8).cast(pl.Categorical) for c in columns]
    )


def load_stroke_csv(
    path: str | Path,
    separator: str = ",",
    drop_other_gender: bool = True,
) -> pl.DataFrame:
    """Load the stroke dataset and coerce the binary-coded columns.

    Absent BMI ("N/A") and smoking status ("Unknown") become nulls so that the
    downstream imputer sees them as missing.
    """
    header = pl.read_csv(path, separator=separator, n_rows=0, infer_schema_length=0)
    _require_columns(header, list(STROKE_SCHEMA))
    raw = pl.read_csv(
        path,
        separator=separator,
        null_values=MISSING_TOKENS,
        infer_schema_length=0,
    )
    df = raw.select(list(STROKE_SCHEMA)).with_columns(
        [pl.col(name).str.strip_chars().cast(dtype) for name, dtype in STROKE_SCHEMA.items()]
    )
    if drop_other_gender:
        before = df.height
        df = df.filter(pl.col("gender").ne_missing("Other"))
        if df.height != before:
            logger.info("Dropped %d record(s) with gender 'Other'", before - df.height)
    df = coerce_binary_columns(df)
    logger.info("Loaded %d records from %s", df.height, path)
    return df
