from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import polars as pl

from .base import Transformer, _categorical_columns, _ensure_polars_df, _require_columns

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


def item_name(feature: str, value: object) -> str:
    """``feature=value`` with whitespace collapsed to underscores."""
    return _WS.sub("_", f"{feature}={value}")


class ItemEncoder(Transformer):
    """One item column per ``feature=value`` pair, holding 0/1 membership.

    This is the transaction encoding rule-list learners consume. Values not
    seen during fit get all zeros.
    """

    def __init__(self, columns: Optional[Sequence[str]] = None, exclude: Sequence[str] = ()) -> None:
        self.columns = None if columns is None else list(columns)
        self.exclude = list(exclude)
        self.categories_: Dict[str, List[str]] = {}

    def fit(self, df: pl.DataFrame) -> "ItemEncoder":
        df = _ensure_polars_df(df)
        cols = self.columns if self.columns is not None else _categorical_columns(df, exclude=self.exclude)
        _require_columns(df, cols)
        self.feature_names_in_ = list(cols)
        self.categories_.clear()
        names: List[str] = []
        for col in cols:
            s = df.get_column(col)
            if isinstance(s.dtype, pl.Enum):
                # keep bucket order
                seen = set(s.cast(pl.Utf8).drop_nulls().to_list())
                cats = [c for c in s.dtype.categories.to_list() if c in seen]
            else:
                cats = sorted(s.drop_nulls().cast(pl.Utf8).unique().to_list())
            self.categories_[col] = cats
            names.extend(item_name(col, c) for c in cats)
        self.feature_names_out_ = names
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, self.feature_names_in_ or [])
        exprs = []
        for col in self.feature_names_in_ or []:
            for cat in self.categories_[col]:
                exprs.append(
                    (pl.col(col).cast(pl.Utf8) == pl.lit(cat)).fill_null(False).cast(pl.Int8).alias(item_name(col, cat))
                )
        return df.select(exprs)


def write_sbrl_inputs(
    df: pl.DataFrame,
    features: Sequence[str],
    target: str,
    data_path: str | Path,
    label_path: str | Path,
    encoder: Optional[ItemEncoder] = None,
) -> ItemEncoder:
    """Write the whitespace-delimited item and label files an SBRL tool reads.

    Data file: one line per item, ``{feature=value}`` followed by the 0/1
    membership of every record. Label file: one line per class,
    ``{target=class}`` followed by the 0/1 indicator of every record.
    """
    df = _ensure_polars_df(df)
    _require_columns(df, [*features, target])
    if encoder is None:
        encoder = ItemEncoder(columns=features).fit(df)
    items = encoder.transform(df)

    with open(data_path, "w", encoding="utf-8") as fh:
        for name in items.columns:
            bits = " ".join(str(int(b)) for b in items.get_column(name).to_list())
            fh.write(f"{{{name}}} {bits}\n")

    y = df.get_column(target).cast(pl.Utf8)
    classes = sorted(y.drop_nulls().unique().to_list())
    with open(label_path, "w", encoding="utf-8") as fh:
        for cls in classes:
            bits = " ".join("1" if v == cls else "0" for v in y.to_list())
            fh.write(f"{{{item_name(target, cls)}}} {bits}\n")

    logger.info(
        "Wrote %d items x %d records to %s and %d label lines to %s",
        items.width, items.height, data_path, len(classes), label_path,
    )
    return encoder


class RuleListClassifier:
    """Rule-list classifier over the item encoding of categorical features.

    Defaults to imodels' ``BayesianRuleListClassifier``. Any estimator with
    ``fit``/``predict_proba`` can be passed in ``estimator`` instead.
    """

    def __init__(
        self,
        target: str = "stroke",
        features: Optional[Sequence[str]] = None,
        positive_label: str = "1",
        list_length_prior: int = 3,
        list_width_prior: int = 1,
        max_cardinality: int = 2,
        min_support: float = 0.1,
        n_chains: int = 3,
        max_iter: int = 50000,
        estimator: Any = None,
    ) -> None:
        self.target = target
        self.features = None if features is None else list(features)
        self.positive_label = str(positive_label)
        self.list_length_prior = list_length_prior
        self.list_width_prior = list_width_prior
        self.max_cardinality = max_cardinality
        self.min_support = min_support
        self.n_chains = n_chains
        self.max_iter = max_iter
        self.estimator = estimator
        self.is_fitted_ = False

    def _build_estimator(self):
        if self.estimator is not None:
            return self.estimator
        from imodels import BayesianRuleListClassifier

        return BayesianRuleListClassifier(
            listlengthprior=self.list_length_prior,
            listwidthprior=self.list_width_prior,
            maxcardinality=self.max_cardinality,
            minsupport=self.min_support,
            n_chains=self.n_chains,
            max_iter=self.max_iter,
            class1label=item_name(self.target, self.positive_label),
        )

    def _labels(self, df: pl.DataFrame) -> np.ndarray:
        return (df.get_column(self.target).cast(pl.Utf8) == self.positive_label).cast(pl.Int64).to_numpy()

    def fit(self, df: pl.DataFrame) -> "RuleListClassifier":
        df = _ensure_polars_df(df)
        _require_columns(df, [self.target])
        self.encoder_ = ItemEncoder(columns=self.features, exclude=[self.target]).fit(df)
        X = self.encoder_.transform(df)
        y = self._labels(df)
        if len(np.unique(y)) != 2:
            raise ValueError(f"'{self.target}' must contain both classes to fit a rule list")

        model = self._build_estimator()
        names = X.columns
        if self.estimator is None:
            # items are already 0/1, so the learner mines them as-is
            model.fit(X.to_numpy(), y, feature_names=names)
        else:
            model.fit(X.to_numpy(), y)
        self.model_ = model
        self.feature_names_ = list(names)
        self.is_fitted_ = True
        logger.info("Fitted rule list on %d records and %d items", X.height, X.width)
        return self

    def predict_proba(self, df: pl.DataFrame) -> np.ndarray:
        """Probability of the positive class for each record."""
        if not self.is_fitted_:
            raise RuntimeError("Call fit before predict_proba")
        X = self.encoder_.transform(_ensure_polars_df(df)).to_numpy()
        proba = np.asarray(self.model_.predict_proba(X))
        if proba.ndim == 2:
            classes = list(getattr(self.model_, "classes_", [0, 1]))
            col = classes.index(1) if 1 in classes else proba.shape[1] - 1
            return proba[:, col]
        return proba

    def predict(self, df: pl.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return (self.predict_proba(df) >= threshold).astype(int)

    def labels(self, df: pl.DataFrame) -> np.ndarray:
        """0/1 target vector for ``df``, positive where the target equals ``positive_label``."""
        return self._labels(_ensure_polars_df(df))

    def rules(self) -> str:
        if not self.is_fitted_:
            raise RuntimeError("Call fit before rules")
        return str(self.model_)
