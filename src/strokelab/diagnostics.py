from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import polars as pl

from .base import _ensure_polars_df, _require_columns


def missing_percentages(df: pl.DataFrame, columns: Optional[Sequence[str]] = None) -> pl.DataFrame:
    """Percentage of null values per column, highest first.

    Returns a frame with columns ``column`` and ``missing_pct`` (0-100).
    """
    df = _ensure_polars_df(df)
    cols = list(df.columns) if columns is None else list(columns)
    _require_columns(df, cols)
    n = df.height
    pct = [100.0 * df.get_column(c).null_count() / n if n else 0.0 for c in cols]
    return (
        pl.DataFrame({"column": cols, "missing_pct": pct}, schema={"column": pl.Utf8, "missing_pct": pl.Float64})
        .sort(["missing_pct", "column"], descending=[True, False])
    )


def bucket_counts(df: pl.DataFrame, column: str, target: Optional[str] = None) -> pl.DataFrame:
    """Record count per bucket, in bucket order, with the positive rate when a target is given."""
    df = _ensure_polars_df(df)
    _require_columns(df, [column] if target is None else [column, target])
    aggs = [pl.len().alias("count")]
    if target is not None:
        aggs.append((pl.col(target).cast(pl.Utf8) == "1").mean().alias("positive_rate"))
    out = df.group_by(column).agg(aggs)
    # Enum/categorical columns sort by their physical order, which is the bucket order
    return out.sort(column, nulls_last=True)


def information_value(df: pl.DataFrame, feature: str, target: str, eps: float = 1e-6) -> float:
    """Information Value of a categorical feature against a binary 0/1 target."""
    df = _ensure_polars_df(df)
    _require_columns(df, [feature, target])
    y = pl.col(target).cast(pl.Utf8)
    agg = (
        df.group_by(feature)
        .agg([(y == "1").sum().alias("pos"), (y == "0").sum().alias("neg")])
        .with_columns([
            (pl.col("pos") / (pl.sum("pos") + eps)).alias("dist_pos"),
            (pl.col("neg") / (pl.sum("neg") + eps)).alias("dist_neg"),
        ])
        .with_columns(
            (
                (pl.col("dist_pos") - pl.col("dist_neg"))
                * ((pl.col("dist_pos") + eps) / (pl.col("dist_neg") + eps)).log()
            ).alias("iv_part")
        )
    )
    return float(agg.get_column("iv_part").sum())


def ks_statistic(y_true: Sequence[int], scores: Sequence[float]) -> float:
    """Kolmogorov-Smirnov separation between positive and negative score distributions.

    KS = max |TPR(t) - FPR(t)| over the score-sorted records.
    """
    y = np.asarray(y_true, dtype=int)
    s = np.asarray(scores, dtype=float)
    n_pos = int((y == 1).sum())
    n_neg = int((y == 0).sum())
    if n_pos == 0 or n_neg == 0:
        return 0.0
    order = np.argsort(s, kind="mergesort")
    y_sorted = y[order]
    s_sorted = s[order]
    cum_pos = np.cumsum(y_sorted == 1) / n_pos
    cum_neg = np.cumsum(y_sorted == 0) / n_neg
    # evaluate only at the last record of each tied score
    last_of_tie = np.append(s_sorted[1:] != s_sorted[:-1], True)
    return float(np.abs(cum_pos - cum_neg)[last_of_tie].max())
