import logging

from .base import SchemaError, Transformer
from .io import load_stroke_csv, coerce_binary_columns
from .diagnostics import (
    missing_percentages,
    bucket_counts,
    information_value,
    ks_statistic,
)
from .discretize import (
    ThresholdDiscretizer,
    MixtureQuartileDiscretizer,
    StrokeDiscretizer,
    age_discretizer,
    bmi_discretizer,
)
from .impute import (
    SmokingStatusImputer,
    MissingBucketDropper,
    StrokeImputer,
)
from .resample import MinorityOversampler, class_balance
from .rules import ItemEncoder, RuleListClassifier, write_sbrl_inputs
from .evaluate import Evaluation, evaluate_scores, optimal_threshold
from .causal import PAG, CausalStructureLearner
from .config import PipelineConfig
from .pipeline import PipelineResult, run_pipeline
from .report import render_report, write_report

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "SchemaError",
    "Transformer",
    # Loading
    "load_stroke_csv",
    "coerce_binary_columns",
    # Diagnostics
    "missing_percentages",
    "bucket_counts",
    "information_value",
    "ks_statistic",
    # Discretizers
    "ThresholdDiscretizer",
    "MixtureQuartileDiscretizer",
    "StrokeDiscretizer",
    "age_discretizer",
    "bmi_discretizer",
    # Imputers
    "SmokingStatusImputer",
    "MissingBucketDropper",
    "StrokeImputer",
    # Resampling
    "MinorityOversampler",
    "class_balance",
    # Rule list
    "ItemEncoder",
    "RuleListClassifier",
    "write_sbrl_inputs",
    # Evaluation
    "Evaluation",
    "evaluate_scores",
    "optimal_threshold",
    # Causal discovery
    "PAG",
    "CausalStructureLearner",
    # Pipeline
    "PipelineConfig",
    "PipelineResult",
    "run_pipeline",
    "render_report",
    "write_report",
]
