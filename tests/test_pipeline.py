from pathlib import Path

import pytest

pl = pytest.importorskip("polars", reason="polars is required for strokelab tests")
pytest.importorskip("imblearn", reason="imbalanced-learn is required for the pipeline")
tree = pytest.importorskip("sklearn.tree")

from strokelab.cli import build_parser, main
from strokelab.config import PipelineConfig
from strokelab.pipeline import prepare, run_pipeline, split_train_test
from strokelab.report import render_report, write_report


def _config(tmp_path: Path, **causal) -> PipelineConfig:
    cfg = PipelineConfig(seed=0, out_dir=str(tmp_path / "out"))
    cfg.causal.enabled = bool(causal)
    for key, value in causal.items():
        setattr(cfg.causal, key, value)
    return cfg


def test_prepare_yields_fully_labelled_frame(stroke_df: pl.DataFrame, tmp_path: Path) -> None:
    cleaned, discretizer, imputer = prepare(stroke_df, _config(tmp_path))

    assert cleaned.height == stroke_df.height - stroke_df.get_column("bmi").null_count()
    assert imputer.n_dropped_ == stroke_df.get_column("bmi").null_count()
    features = PipelineConfig().data.features
    assert cleaned.select(features).null_count().sum_horizontal().item() == 0


def test_split_is_stratified(stroke_df: pl.DataFrame) -> None:
    train, test = split_train_test(stroke_df, "stroke", 0.3, seed=0)
    assert train.height + test.height == stroke_df.height
    assert set(train.get_column("id").to_list()).isdisjoint(test.get_column("id").to_list())

    def rate(df: pl.DataFrame) -> float:
        return (df.get_column("stroke").cast(pl.Utf8) == "1").mean()

    assert rate(train) == pytest.approx(rate(test), abs=0.03)


def test_run_pipeline_without_causal_step(stroke_df: pl.DataFrame, tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    result = run_pipeline(cfg, df=stroke_df, estimator=tree.DecisionTreeClassifier(max_depth=3, random_state=0))

    assert result.n_loaded == stroke_df.height
    assert result.n_dropped == stroke_df.get_column("bmi").null_count()
    assert result.balance_after["0"] == result.balance_after["1"]
    assert result.balance_before["0"] == result.balance_after["0"]
    assert 0.0 <= result.evaluation.auc <= 1.0
    assert result.pag is None
    assert set(result.bucket_counts) == {"age_bucket", "bmi_bucket", "glucose_bucket"}
    assert set(result.glucose_cut_points) == {"lower", "upper"}

    data_lines = result.artifacts["sbrl_data"].read_text().splitlines()
    label_lines = result.artifacts["sbrl_label"].read_text().splitlines()
    n_train = sum(result.balance_after.values())
    assert len(label_lines) == 2
    assert all(len(line.split()) == 1 + n_train for line in data_lines + label_lines)
    assert "pag_dot" not in result.artifacts

    report = render_report(result)
    assert report.startswith("# Stroke incidence analysis")
    for heading in ("## Discretization", "## Resampling", "## Rule list", "## Evaluation (held-out)"):
        assert heading in report
    assert "Skipped." in report
    assert "| bmi |" in report

    path = write_report(result, tmp_path / "out" / "report.md")
    assert path.read_text() == report


def test_run_pipeline_with_causal_step(stroke_df: pl.DataFrame, tmp_path: Path) -> None:
    pytest.importorskip("causallearn", reason="causal-learn is required for FCI")
    cfg = _config(
        tmp_path,
        enabled=True,
        columns=["age_bucket", "hypertension", "glucose_bucket", "stroke"],
        tiers=[["age_bucket"], ["stroke"]],
    )
    result = run_pipeline(cfg, df=stroke_df, estimator=tree.DecisionTreeClassifier(max_depth=3, random_state=0))

    assert result.pag is not None
    assert result.pag.nodes == ["age_bucket", "hypertension", "glucose_bucket", "stroke"]
    assert result.artifacts["pag_dot"].read_text() == result.pag.to_dot()
    assert "## Causal structure (FCI)" in render_report(result)


def test_run_pipeline_needs_data_path(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="data.path"):
        run_pipeline(_config(tmp_path))


def test_cli_parser() -> None:
    args = build_parser().parse_args(["data.csv", "--no-causal", "--seed", "5", "--out-dir", "x"])
    assert args.csv == "data.csv"
    assert args.no_causal
    assert args.seed == 5
    assert args.out_dir == "x"
    assert args.log_level == "INFO"


def test_cli_end_to_end(stroke_csv: Path, tmp_path: Path) -> None:
    pytest.importorskip("imodels", reason="imodels is required for the default rule learner")
    config = tmp_path / "fast.toml"
    config.write_text("[rules]\nmax_iter = 300\nn_chains = 1\nmin_support = 0.2\n\n[resample]\nk_neighbors = 2\n")
    out_dir = tmp_path / "cli"

    code = main([str(stroke_csv), "--config", str(config), "--out-dir", str(out_dir), "--no-causal"])

    assert code == 0
    assert (out_dir / "report.md").exists()
    assert (out_dir / "sbrl.out").exists()
    assert (out_dir / "sbrl.label").exists()
    assert not (out_dir / "pag.dot").exists()
