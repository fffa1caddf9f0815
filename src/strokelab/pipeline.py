from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import polars as pl

from .causal import PAG, CausalStructureLearner
from .config import PipelineConfig
from .diagnostics import bucket_counts, information_value, missing_percentages
from .discretize import StrokeDiscretizer
from .evaluate import Evaluation, evaluate_scores
from .impute import StrokeImputer
from .io import load_stroke_csv
from .resample import MinorityOversampler, class_balance
from .rules import RuleListClassifier, write_sbrl_inputs

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = ("age_bucket", "bmi_bucket", "glucose_bucket")


@dataclass
class PipelineResult:
    config: PipelineConfig
    n_loaded: int
    missing: pl.DataFrame
    n_dropped: int
    cleaned: pl.DataFrame
    bucket_counts: Dict[str, pl.DataFrame]
    information_values: Dict[str, float]
    glucose_cut_points: Dict[str, list]
    balance_before: Dict[str, int]
    balance_after: Dict[str, int]
    rules: str
    evaluation: Evaluation
    pag: Optional[PAG] = None
    artifacts: Dict[str, Path] = field(default_factory=dict)


def split_train_test(df: pl.DataFrame, target: str, test_size: float, seed: int):
    """Stratified train/test split of a polars frame."""
    from sklearn.model_selection import train_test_split

    idx = list(range(df.height))
    y = df.get_column(target).cast(pl.Utf8).to_list()
    train_idx, test_idx = train_test_split(idx, test_size=test_size, random_state=seed, stratify=y)
    return df.select(pl.all().gather(sorted(train_idx))), df.select(pl.all().gather(sorted(test_idx)))


def prepare(df: pl.DataFrame, config: PipelineConfig) -> tuple[pl.DataFrame, StrokeDiscretizer, StrokeImputer]:
    """Discretize then impute: the deterministic cleaning half of the pipeline."""
    discretizer = StrokeDiscretizer(random_state=config.seed)
    binned = discretizer.fit_transform(df)
    imputer = StrokeImputer()
    cleaned = imputer.fit_transform(binned)
    return cleaned, discretizer, imputer


def run_pipeline(
    config: PipelineConfig,
    df: Optional[pl.DataFrame] = None,
    estimator: Any = None,
) -> PipelineResult:
    """Run loading through causal discovery and collect everything the report needs.

    ``df`` bypasses the loader; ``estimator`` replaces the default rule learner.
    """
    config.validate()
    data_cfg = config.data
    if df is None:
        if data_cfg.path is None:
            raise ValueError("data.path must be set when no frame is given")
        df = load_stroke_csv(data_cfg.path, data_cfg.separator, data_cfg.drop_other_gender)
    n_loaded = df.height

    missing = missing_percentages(df)
    cleaned, discretizer, imputer = prepare(df, config)
    logger.info("Cleaned frame: %d of %d records kept", cleaned.height, n_loaded)

    target = data_cfg.target
    features = list(data_cfg.features)
    train, test = split_train_test(cleaned, target, data_cfg.test_size, config.seed)
    logger.info("Split into %d train / %d test records", train.height, test.height)

    sampler = MinorityOversampler(
        target=target,
        features=features,
        sampling_strategy=config.resample.sampling_strategy,
        k_neighbors=config.resample.k_neighbors,
        random_state=config.seed,
    )
    balanced = sampler.fit_resample(train)

    out_dir = Path(config.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    artifacts = {"sbrl_data": out_dir / "sbrl.out", "sbrl_label": out_dir / "sbrl.label"}
    write_sbrl_inputs(balanced, features, target, artifacts["sbrl_data"], artifacts["sbrl_label"])

    rules_cfg = config.rules
    model = RuleListClassifier(
        target=target,
        features=features,
        list_length_prior=rules_cfg.list_length_prior,
        list_width_prior=rules_cfg.list_width_prior,
        max_cardinality=rules_cfg.max_cardinality,
        min_support=rules_cfg.min_support,
        n_chains=rules_cfg.n_chains,
        max_iter=rules_cfg.max_iter,
        estimator=estimator,
    ).fit(balanced)
    evaluation = evaluate_scores(model.labels(test), model.predict_proba(test))

    pag = None
    causal_cfg = config.causal
    if causal_cfg.enabled:
        columns = causal_cfg.columns or [*features, target]
        learner = CausalStructureLearner(
            columns=columns,
            indep_test=causal_cfg.indep_test,
            alpha=causal_cfg.alpha,
            depth=causal_cfg.depth,
            forbidden=causal_cfg.forbidden,
            required=causal_cfg.required,
            tiers=causal_cfg.tiers,
        )
        pag = learner.fit(cleaned)
        artifacts["pag_dot"] = out_dir / "pag.dot"
        artifacts["pag_dot"].write_text(pag.to_dot(), encoding="utf-8")

    return PipelineResult(
        config=config,
        n_loaded=n_loaded,
        missing=missing,
        n_dropped=imputer.n_dropped_,
        cleaned=cleaned,
        bucket_counts={c: bucket_counts(cleaned, c, target) for c in BUCKET_COLUMNS},
        information_values={c: information_value(cleaned, c, target) for c in features},
        glucose_cut_points=dict(discretizer.glucose_.cut_points_),
        balance_before=class_balance(train, target),
        balance_after=class_balance(balanced, target),
        rules=model.rules(),
        evaluation=evaluation,
        pag=pag,
        artifacts=artifacts,
    )
