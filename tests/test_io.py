from pathlib import Path

import pytest

pl = pytest.importorskip("polars", reason="polars is required for strokelab tests")

from strokelab.base import SchemaError
from strokelab.diagnostics import missing_percentages
from strokelab.io import BINARY_COLUMNS, load_stroke_csv


def test_load_coerces_binary_columns_to_categorical(stroke_csv: Path) -> None:
    df = load_stroke_csv(stroke_csv)

    assert df.height == 300
    for col in BINARY_COLUMNS:
        assert df.schema[col] == pl.Categorical
        assert set(df.get_column(col).cast(pl.Utf8).unique().to_list()) <= {"0", "1"}
    assert df.schema["age"] == pl.Float64
    assert df.schema["bmi"] == pl.Float64


def test_load_turns_absence_tokens_into_nulls(stroke_csv: Path) -> None:
    df = load_stroke_csv(stroke_csv)

    assert df.get_column("bmi").null_count() > 0
    assert df.get_column("smoking_status").null_count() > 0
    assert "Unknown" not in df.get_column("smoking_status").drop_nulls().to_list()


def test_load_drops_other_gender(tmp_path: Path, stroke_csv: Path) -> None:
    raw = pl.read_csv(stroke_csv, infer_schema_length=0)
    raw = raw.with_columns(
        pl.when(pl.col("id") == "1").then(pl.lit("Other")).otherwise(pl.col("gender")).alias("gender")
    )
    path = tmp_path / "with_other.csv"
    raw.write_csv(path)

    assert load_stroke_csv(path).height == raw.height - 1
    assert load_stroke_csv(path, drop_other_gender=False).height == raw.height


def test_load_keeps_records_with_missing_gender(tmp_path: Path, stroke_csv: Path) -> None:
    raw = pl.read_csv(stroke_csv, infer_schema_length=0)
    raw = raw.with_columns(
        pl.when(pl.col("id") == "1")
        .then(pl.lit(None, dtype=pl.Utf8))
        .when(pl.col("id") == "2")
        .then(pl.lit("Other"))
        .otherwise(pl.col("gender"))
        .alias("gender")
    )
    path = tmp_path / "null_gender.csv"
    raw.write_csv(path)

    df = load_stroke_csv(path)
    assert df.height == raw.height - 1
    assert df.get_column("gender").null_count() == 1
    assert "Other" not in df.get_column("gender").to_list()


def test_load_semicolon_separator(tmp_path: Path, stroke_csv: Path) -> None:
    raw = pl.read_csv(stroke_csv, infer_schema_length=0)
    path = tmp_path / "semi.csv"
    raw.write_csv(path, separator=";")

    df = load_stroke_csv(path, separator=";")
    assert df.height == raw.height


def test_load_rejects_missing_columns(tmp_path: Path, stroke_csv: Path) -> None:
    raw = pl.read_csv(stroke_csv, infer_schema_length=0).drop("bmi")
    path = tmp_path / "no_bmi.csv"
    raw.write_csv(path)

    with pytest.raises(SchemaError, match="bmi"):
        load_stroke_csv(path)


def test_missing_percentages_after_load(stroke_csv: Path) -> None:
    df = load_stroke_csv(stroke_csv)
    report = missing_percentages(df)

    assert report.columns == ["column", "missing_pct"]
    assert report.height == df.width
    by_col = dict(report.rows())
    assert by_col["bmi"] == pytest.approx(100.0 * df.get_column("bmi").null_count() / df.height)
    assert by_col["age"] == 0.0
    # sorted descending
    pcts = report.get_column("missing_pct").to_list()
    assert pcts == sorted(pcts, reverse=True)
