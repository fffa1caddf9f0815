from __future__ import annotations

from typing import List, Sequence

import polars as pl


class SchemaError(ValueError):
    """Raised when a frame is missing columns a step depends on."""


def _ensure_polars_df(df: pl.DataFrame) -> pl.DataFrame:
    if isinstance(df, pl.DataFrame):
        return df

    # Lazy import so pandas remains optional
    pd = None
    if df.__class__.__module__.startswith("pandas"):
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TypeError(
                "Pandas support requires installing pandas; install pandas to pass pandas.DataFrame"
            ) from exc
    if pd is not None and isinstance(df, pd.DataFrame):  # type: ignore[name-defined]
        try:
            return pl.from_pandas(df)
        except (ImportError, ModuleNotFoundError):
            # Fallback without pyarrow: construct via Python lists
            return pl.DataFrame({col: df[col].tolist() for col in df.columns})

    raise TypeError("Expected a polars.DataFrame or pandas.DataFrame")


def _require_columns(df: pl.DataFrame, columns: Sequence[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(f"Columns not found in DataFrame: {', '.join(missing)}")


def _categorical_columns(df: pl.DataFrame, exclude: Sequence[str] = ()) -> List[str]:
    ex = set(exclude)
    cols: List[str] = []
    for name, dtype in zip(df.columns, df.dtypes):
        if name in ex:
            continue
        if dtype in (pl.Utf8, pl.Categorical, pl.Boolean) or isinstance(dtype, pl.Enum):
            cols.append(name)
    return cols


class Transformer:
    """Simple fit/transform interface for Polars DataFrames.

    Subclasses should implement fit(self, df: pl.DataFrame) -> "Transformer"
    and transform(self, df: pl.DataFrame) -> pl.DataFrame.
    """

    feature_names_in_: List[str] | None = None
    is_fitted_: bool = False

    def fit(self, df: pl.DataFrame) -> "Transformer":  # pragma: no cover
        raise NotImplementedError

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:  # pragma: no cover
        raise NotImplementedError

    def fit_transform(self, df: pl.DataFrame) -> pl.DataFrame:
        return self.fit(df).transform(df)

    def _check_fitted(self) -> None:
        if not self.is_fitted_:
            raise RuntimeError("Call fit before transform")

    def get_feature_names_out(self) -> List[str]:
        names = getattr(self, "feature_names_out_", None)
        if names is None:
            return []
        return list(names)

    def to_dict(self) -> dict:
        # Learned state only (attrs ending with '_'); fitted estimators are skipped
        state = {}
        for k, v in self.__dict__.items():
            if not k.endswith("_"):
                continue
            if type(v).__module__.startswith("sklearn"):
                continue
            if isinstance(v, pl.DataFrame):
                state[k] = {"__type__": "pldf", "columns": v.columns, "rows": v.rows()}
            elif isinstance(v, (list, tuple, dict, str, int, float, bool, type(None))):
                state[k] = v
        state["__class__"] = self.__class__.__name__
        return state

    def from_dict(self, state: dict) -> "Transformer":
        for k, v in state.items():
            if k == "__class__":
                continue
            if isinstance(v, dict) and v.get("__type__") == "pldf":
                df = pl.DataFrame(v["rows"], schema=v["columns"], orient="row")  # type: ignore[arg-type]
                setattr(self, k, df)
            else:
                setattr(self, k, v)
        return self
