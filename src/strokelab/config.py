from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

import yaml

DEFAULT_FEATURES: List[str] = [
    "gender",
    "hypertension",
    "heart_disease",
    "ever_married",
    "work_type",
    "Residence_type",
    "smoking_status",
    "age_bucket",
    "bmi_bucket",
    "glucose_bucket",
]


@dataclass
class DataConfig:
    path: Optional[str] = None
    separator: str = ","
    drop_other_gender: bool = True
    target: str = "stroke"
    features: List[str] = field(default_factory=lambda: list(DEFAULT_FEATURES))
    test_size: float = 0.3


@dataclass
class ResampleConfig:
    sampling_strategy: float | str = "auto"
    k_neighbors: int = 5


@dataclass
class RuleListConfig:
    list_length_prior: int = 3
    list_width_prior: int = 1
    max_cardinality: int = 2
    min_support: float = 0.1
    n_chains: int = 3
    max_iter: int = 50000


@dataclass
class CausalConfig:
    enabled: bool = True
    indep_test: str = "chisq"
    alpha: float = 0.05
    depth: int = -1
    columns: Optional[List[str]] = None
    forbidden: List[Tuple[str, str]] = field(default_factory=list)
    required: List[Tuple[str, str]] = field(default_factory=list)
    # demographics first, outcome last
    tiers: List[List[str]] = field(
        default_factory=lambda: [["gender", "age_bucket"], ["stroke"]]
    )


@dataclass
class PipelineConfig:
    seed: int = 42
    out_dir: str = "report"
    data: DataConfig = field(default_factory=DataConfig)
    resample: ResampleConfig = field(default_factory=ResampleConfig)
    rules: RuleListConfig = field(default_factory=RuleListConfig)
    causal: CausalConfig = field(default_factory=CausalConfig)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "PipelineConfig":
        return _build(cls, mapping, "")

    @classmethod
    def from_toml(cls, path: str | Path) -> "PipelineConfig":
        with open(path, "rb") as fh:
            return cls.from_dict(tomllib.load(fh))

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PipelineConfig":
        with open(path, "r", encoding="utf-8") as fh:
            return cls.from_dict(yaml.safe_load(fh) or {})

    @classmethod
    def from_file(cls, path: str | Path) -> "PipelineConfig":
        """Load settings from a .yaml/.yml or .toml file, chosen by suffix."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_toml(path)

    def validate(self) -> "PipelineConfig":
        if not 0.0 < self.data.test_size < 1.0:
            raise ValueError("data.test_size must be in (0, 1)")
        if self.data.target in self.data.features:
            raise ValueError("data.target must not be listed in data.features")
        if self.resample.k_neighbors < 1:
            raise ValueError("resample.k_neighbors must be >= 1")
        return self


def _build(cls, mapping: Mapping[str, Any], prefix: str):
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(mapping) - set(known))
    if unknown:
        raise ValueError(f"Unknown config key(s): {', '.join(prefix + k for k in unknown)}")
    obj = cls()
    updates = {}
    for key, value in mapping.items():
        current = getattr(obj, key)
        if is_dataclass(current):
            if not isinstance(value, Mapping):
                raise ValueError(f"Config section '{prefix}{key}' must be a table")
            updates[key] = _build(type(current), value, f"{prefix}{key}.")
        elif key in ("forbidden", "required"):
            updates[key] = [tuple(pair) for pair in value]
        else:
            updates[key] = value
    return replace(obj, **updates)
