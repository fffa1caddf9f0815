from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import polars as pl

from .base import _categorical_columns, _ensure_polars_df, _require_columns

logger = logging.getLogger(__name__)


class MinorityOversampler:
    """Synthesize minority-class records with SMOTE-family nearest-neighbour sampling.

    Categorical columns are integer-coded before sampling and decoded back to
    their original dtype afterwards. With only categorical features SMOTEN is
    used; when ``numeric_columns`` are given SMOTENC handles the mix.
    """

    def __init__(
        self,
        target: str = "stroke",
        features: Optional[Sequence[str]] = None,
        numeric_columns: Optional[Sequence[str]] = None,
        sampling_strategy: float | str = "auto",
        k_neighbors: int = 5,
        random_state: Optional[int] = 42,
    ) -> None:
        self.target = target
        self.features = None if features is None else list(features)
        self.numeric_columns = [] if numeric_columns is None else list(numeric_columns)
        self.sampling_strategy = sampling_strategy
        self.k_neighbors = int(k_neighbors)
        self.random_state = random_state
        self.categories_: Dict[str, List[str]] = {}
        self.n_synthetic_: int = 0

    def _build_sampler(self, categorical_idx: List[int]):
        from imblearn.over_sampling import SMOTEN, SMOTENC

        if self.numeric_columns:
            return SMOTENC(
                categorical_features=categorical_idx,
                sampling_strategy=self.sampling_strategy,
                k_neighbors=self.k_neighbors,
                random_state=self.random_state,
            )
        return SMOTEN(
            sampling_strategy=self.sampling_strategy,
            k_neighbors=self.k_neighbors,
            random_state=self.random_state,
        )

    def fit_resample(self, df: pl.DataFrame) -> pl.DataFrame:
        df = _ensure_polars_df(df)
        features = self.features
        if features is None:
            features = _categorical_columns(df, exclude=[self.target]) + [
                c for c in self.numeric_columns if c != self.target
            ]
        _require_columns(df, [*features, self.target])
        if df.select(features + [self.target]).null_count().sum_horizontal().item():
            raise ValueError("Resampling requires a frame without missing values")

        categorical = [c for c in features if c not in self.numeric_columns]
        self.categories_ = {}
        columns = []
        for col in features:
            s = df.get_column(col)
            if col in self.numeric_columns:
                columns.append(s.cast(pl.Float64).to_numpy())
                continue
            cats = sorted(s.cast(pl.Utf8).unique().to_list())
            self.categories_[col] = cats
            lookup = {c: i for i, c in enumerate(cats)}
            columns.append(np.array([lookup[v] for v in s.cast(pl.Utf8).to_list()], dtype=float))
        X = np.column_stack(columns)
        y_labels = df.get_column(self.target).cast(pl.Utf8).to_numpy()

        categorical_idx = [i for i, c in enumerate(features) if c in categorical]
        sampler = self._build_sampler(categorical_idx)
        X_res, y_res = sampler.fit_resample(X, y_labels)
        self.n_synthetic_ = int(X_res.shape[0] - X.shape[0])
        logger.info(
            "Oversampled '%s': %d -> %d records (%d synthetic)",
            self.target, X.shape[0], X_res.shape[0], self.n_synthetic_,
        )

        data = {}
        for i, col in enumerate(features):
            dtype = df.schema[col]
            if col in self.numeric_columns:
                data[col] = pl.Series(col, X_res[:, i]).cast(dtype)
                continue
            cats = self.categories_[col]
            decoded = [cats[int(round(v))] for v in X_res[:, i]]
            data[col] = _restore_dtype(pl.Series(col, decoded, dtype=pl.Utf8), dtype)
        data[self.target] = _restore_dtype(
            pl.Series(self.target, [str(v) for v in y_res], dtype=pl.Utf8), df.schema[self.target]
        )
        return pl.DataFrame(data).select([*features, self.target])


def _restore_dtype(s: pl.Series, dtype: pl.DataType) -> pl.Series:
    if dtype == pl.Utf8:
        return s
    if dtype == pl.Boolean:
        return (s == "true").alias(s.name)
    return s.cast(dtype)


def class_balance(df: pl.DataFrame, target: str) -> Dict[str, int]:
    """Record count per target class."""
    df = _ensure_polars_df(df)
    _require_columns(df, [target])
    counts = df.group_by(pl.col(target).cast(pl.Utf8)).len().sort(target)
    return {str(k): int(v) for k, v in counts.iter_rows()}
