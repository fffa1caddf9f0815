from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from .base import Transformer, _ensure_polars_df, _require_columns

logger = logging.getLogger(__name__)

BMI_BREAKS: List[float] = [18.5, 25.0, 30.0]
BMI_LABELS: List[str] = ["underweight", "normal", "overweight", "obese"]

AGE_BREAKS: List[float] = [12.0, 19.0, 35.0, 55.0, 65.0]
AGE_LABELS: List[str] = ["child", "teenager", "young_adult", "middle_aged", "older_adult", "elderly"]

COMPONENT_NAMES: Tuple[str, str] = ("lower", "upper")
QUARTILE_POSITIONS: Tuple[str, str, str] = ("below_q1", "q1_q3", "above_q3")
GLUCOSE_LABELS: List[str] = [f"{c}_{p}" for c in COMPONENT_NAMES for p in QUARTILE_POSITIONS]


def _validate_breaks(breaks: Sequence[float], labels: Sequence[str]) -> List[float]:
    edges = [float(b) for b in breaks]
    if not edges or sorted(set(edges)) != edges:
        raise ValueError("breaks must be strictly increasing")
    if len(labels) != len(edges) + 1:
        raise ValueError(f"Expected {len(edges) + 1} labels for {len(edges)} breaks, got {len(labels)}")
    if len(set(labels)) != len(labels):
        raise ValueError("labels must be unique")
    return edges


def _bucket_expr(value: pl.Expr, breaks: List[float], labels: List[str]) -> pl.Expr:
    # left-closed intervals; a null value matches no branch and stays null
    expr = pl.when(value.is_null()).then(pl.lit(None, dtype=pl.Utf8))
    for edge, label in zip(breaks, labels):
        expr = expr.when(value < edge).then(pl.lit(label))
    return expr.otherwise(pl.lit(labels[-1]))


class ThresholdDiscretizer(Transformer):
    """Bucket a numeric column on fixed, left-closed thresholds.

    ``breaks=[a, b]`` with ``labels=[x, y, z]`` maps ``v < a`` to x,
    ``a <= v < b`` to y and ``v >= b`` to z. The output is an ordered
    ``pl.Enum``; nulls stay null.
    """

    def __init__(
        self,
        column: str,
        breaks: Sequence[float],
        labels: Sequence[str],
        output: Optional[str] = None,
        drop_original: bool = False,
    ) -> None:
        self.column = column
        self.breaks = list(breaks)
        self.labels = list(labels)
        self.output = output or f"{column}_bucket"
        self.drop_original = drop_original
        self.breaks_: List[float] = []

    def fit(self, df: pl.DataFrame) -> "ThresholdDiscretizer":
        df = _ensure_polars_df(df)
        _require_columns(df, [self.column])
        self.breaks_ = _validate_breaks(self.breaks, self.labels)
        self.feature_names_in_ = [self.column]
        self.feature_names_out_ = [self.output]
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, [self.column])
        out = df.with_columns(
            _bucket_expr(pl.col(self.column).cast(pl.Float64), self.breaks_, self.labels)
            .cast(pl.Enum(self.labels))
            .alias(self.output)
        )
        if self.drop_original and self.output != self.column:
            out = out.drop(self.column)
        return out


def bmi_discretizer(column: str = "bmi", output: str = "bmi_bucket") -> ThresholdDiscretizer:
    return ThresholdDiscretizer(column, BMI_BREAKS, BMI_LABELS, output=output)


def age_discretizer(column: str = "age", output: str = "age_bucket") -> ThresholdDiscretizer:
    return ThresholdDiscretizer(column, AGE_BREAKS, AGE_LABELS, output=output)


class MixtureQuartileDiscretizer(Transformer):
    """Bucket a numeric column by mixture component and within-component quartile.

    A two-component ``GaussianMixture`` is fitted to the non-null values.
    Components are ordered by mean ("lower", "upper"). Each value is assigned
    to its most likely component and then placed ``below_q1``, ``q1_q3``
    (inclusive on both ends) or ``above_q3`` relative to the quartiles of the
    training values assigned to that component.
    """

    def __init__(
        self,
        column: str = "avg_glucose_level",
        output: Optional[str] = None,
        random_state: Optional[int] = 42,
        n_init: int = 1,
        drop_original: bool = False,
    ) -> None:
        self.column = column
        self.output = output or f"{column}_bucket"
        self.random_state = random_state
        self.n_init = int(n_init)
        self.drop_original = drop_original
        self.means_: List[float] = []
        self.cut_points_: Dict[str, List[float]] = {}
        self.labels_: List[str] = list(GLUCOSE_LABELS)

    def fit(self, df: pl.DataFrame) -> "MixtureQuartileDiscretizer":
        from sklearn.mixture import GaussianMixture

        df = _ensure_polars_df(df)
        _require_columns(df, [self.column])
        values = df.get_column(self.column).cast(pl.Float64).drop_nulls().to_numpy()
        if values.size < len(COMPONENT_NAMES):
            raise ValueError(f"Need at least {len(COMPONENT_NAMES)} non-null values in '{self.column}' to fit")

        gmm = GaussianMixture(
            n_components=len(COMPONENT_NAMES),
            random_state=self.random_state,
            n_init=self.n_init,
        )
        gmm.fit(values.reshape(-1, 1))
        # rank components by mean so "lower" always means the lower-glucose group
        order = np.argsort(gmm.means_.ravel())
        self.component_order_ = [int(c) for c in order]
        self.gmm_ = gmm
        self.gmm_weights_ = gmm.weights_.ravel().tolist()
        self.gmm_means_ = gmm.means_.ravel().tolist()
        self.gmm_covariances_ = gmm.covariances_.ravel().tolist()
        self.means_ = [float(gmm.means_.ravel()[c]) for c in order]

        ranks = self._component_ranks(values)
        self.cut_points_ = {}
        for rank, name in enumerate(COMPONENT_NAMES):
            members = values[ranks == rank]
            if members.size == 0:
                # empty component: fall back to the full column so every value still lands in a bucket
                members = values
            q1, q3 = np.quantile(members, [0.25, 0.75])
            self.cut_points_[name] = [float(q1), float(q3)]
            logger.debug(
                "%s component '%s': n=%d mean=%.3f q1=%.3f q3=%.3f",
                self.column, name, int((ranks == rank).sum()), self.means_[rank], q1, q3,
            )

        self.feature_names_in_ = [self.column]
        self.feature_names_out_ = [self.output]
        self.is_fitted_ = True
        return self

    def _component_ranks(self, values: np.ndarray) -> np.ndarray:
        raw = self.gmm_.predict(values.reshape(-1, 1))
        rank_of = np.empty(len(self.component_order_), dtype=int)
        rank_of[self.component_order_] = np.arange(len(self.component_order_))
        return rank_of[raw]

    def from_dict(self, state: dict) -> "MixtureQuartileDiscretizer":
        """Restore exported state, rebuilding the mixture from its stored parameters."""
        from sklearn.mixture import GaussianMixture

        super().from_dict(state)
        if not self.is_fitted_:
            return self
        k = len(self.gmm_weights_)
        covariances = np.asarray(self.gmm_covariances_, dtype=float).reshape(k, 1, 1)
        gmm = GaussianMixture(n_components=k, covariance_type="full", random_state=self.random_state)
        gmm.weights_ = np.asarray(self.gmm_weights_, dtype=float)
        gmm.means_ = np.asarray(self.gmm_means_, dtype=float).reshape(k, 1)
        gmm.covariances_ = covariances
        gmm.precisions_cholesky_ = 1.0 / np.sqrt(covariances)
        gmm.precisions_ = 1.0 / covariances
        gmm.converged_ = True
        gmm.n_features_in_ = 1
        self.gmm_ = gmm
        return self

    def assign(self, values: np.ndarray) -> List[Optional[str]]:
        """Bucket label for each value; NaN maps to None."""
        self._check_fitted()
        values = np.asarray(values, dtype=float)
        labels: List[Optional[str]] = [None] * values.size
        present = ~np.isnan(values)
        if not present.any():
            return labels
        ranks = self._component_ranks(values[present])
        for idx, value, rank in zip(np.flatnonzero(present), values[present], ranks):
            name = COMPONENT_NAMES[rank]
            q1, q3 = self.cut_points_[name]
            if value < q1:
                position = QUARTILE_POSITIONS[0]
            elif value > q3:
                position = QUARTILE_POSITIONS[2]
            else:
                position = QUARTILE_POSITIONS[1]
            labels[idx] = f"{name}_{position}"
        return labels

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, [self.column])
        values = df.get_column(self.column).cast(pl.Float64).fill_null(float("nan")).to_numpy()
        buckets = pl.Series(self.output, self.assign(values), dtype=pl.Utf8).cast(pl.Enum(self.labels_))
        out = df.with_columns(buckets)
        if self.drop_original and self.output != self.column:
            out = out.drop(self.column)
        return out


class StrokeDiscretizer(Transformer):
    """Adds ``age_bucket``, ``bmi_bucket`` and ``glucose_bucket`` to the stroke frame."""

    def __init__(
        self,
        age_column: str = "age",
        bmi_column: str = "bmi",
        glucose_column: str = "avg_glucose_level",
        random_state: Optional[int] = 42,
    ) -> None:
        self.age_column = age_column
        self.bmi_column = bmi_column
        self.glucose_column = glucose_column
        self.random_state = random_state
        self.steps_: List[Transformer] = []

    def fit(self, df: pl.DataFrame) -> "StrokeDiscretizer":
        df = _ensure_polars_df(df)
        self.steps_ = [
            age_discretizer(self.age_column),
            bmi_discretizer(self.bmi_column),
            MixtureQuartileDiscretizer(
                self.glucose_column, output="glucose_bucket", random_state=self.random_state
            ),
        ]
        for step in self.steps_:
            step.fit(df)
        self.feature_names_in_ = [self.age_column, self.bmi_column, self.glucose_column]
        self.feature_names_out_ = [name for step in self.steps_ for name in step.get_feature_names_out()]
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        out = _ensure_polars_df(df)
        for step in self.steps_:
            out = step.transform(out)
        return out

    @property
    def glucose_(self) -> MixtureQuartileDiscretizer:
        self._check_fitted()
        return self.steps_[2]  # type: ignore[return-value]
