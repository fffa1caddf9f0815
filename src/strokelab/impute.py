from __future__ import annotations

import logging
from typing import Optional, Sequence

import polars as pl

from .base import Transformer, _ensure_polars_df, _require_columns

logger = logging.getLogger(__name__)

NEVER_SMOKED = "never smoked"
UNKNOWN = "unknown"


class SmokingStatusImputer(Transformer):
    """Fill missing smoking status conditionally on the age bucket.

    - missing and age bucket in ``child_labels`` -> ``"never smoked"``
    - any other missing value -> ``"unknown"``
    - present values are left unchanged
    """

    def __init__(
        self,
        column: str = "smoking_status",
        age_bucket_column: str = "age_bucket",
        child_labels: Sequence[str] = ("child",),
        child_value: str = NEVER_SMOKED,
        fill_value: str = UNKNOWN,
        add_indicator: bool = False,
        indicator_suffix: str = "__isnull",
    ) -> None:
        self.column = column
        self.age_bucket_column = age_bucket_column
        self.child_labels = list(child_labels)
        self.child_value = child_value
        self.fill_value = fill_value
        self.add_indicator = add_indicator
        self.indicator_suffix = indicator_suffix

    def fit(self, df: pl.DataFrame) -> "SmokingStatusImputer":
        df = _ensure_polars_df(df)
        _require_columns(df, [self.column, self.age_bucket_column])
        self.feature_names_in_ = [self.column, self.age_bucket_column]
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, [self.column, self.age_bucket_column])
        missing = pl.col(self.column).is_null()
        is_child = pl.col(self.age_bucket_column).cast(pl.Utf8).is_in(self.child_labels)
        out = df
        if self.add_indicator:
            out = out.with_columns(missing.alias(f"{self.column}{self.indicator_suffix}"))
        out = out.with_columns(
            pl.when(missing & is_child)
            .then(pl.lit(self.child_value))
            .when(missing)
            .then(pl.lit(self.fill_value))
            .otherwise(pl.col(self.column).cast(pl.Utf8))
            .alias(self.column)
        )
        n_missing = df.get_column(self.column).null_count()
        if n_missing:
            logger.info("Imputed %d missing '%s' value(s)", n_missing, self.column)
        return out


class MissingBucketDropper(Transformer):
    """Drop records with a null in any of ``columns`` (by default the BMI bucket)."""

    def __init__(self, columns: Optional[Sequence[str]] = None) -> None:
        self.columns = ["bmi_bucket"] if columns is None else list(columns)
        self.n_dropped_: int = 0

    def fit(self, df: pl.DataFrame) -> "MissingBucketDropper":
        df = _ensure_polars_df(df)
        _require_columns(df, self.columns)
        self.feature_names_in_ = list(self.columns)
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, self.columns)
        out = df.drop_nulls(subset=self.columns)
        self.n_dropped_ = df.height - out.height
        if self.n_dropped_:
            logger.info("Dropped %d record(s) with missing %s", self.n_dropped_, ", ".join(self.columns))
        return out


class StrokeImputer(Transformer):
    """Smoking-status imputation followed by BMI-bucket exclusion."""

    def __init__(
        self,
        smoking_column: str = "smoking_status",
        age_bucket_column: str = "age_bucket",
        drop_columns: Optional[Sequence[str]] = None,
    ) -> None:
        self.smoking = SmokingStatusImputer(smoking_column, age_bucket_column)
        self.dropper = MissingBucketDropper(drop_columns)

    def fit(self, df: pl.DataFrame) -> "StrokeImputer":
        df = _ensure_polars_df(df)
        self.smoking.fit(df)
        self.dropper.fit(df)
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        return self.dropper.transform(self.smoking.transform(df))

    @property
    def n_dropped_(self) -> int:
        return self.dropper.n_dropped_
