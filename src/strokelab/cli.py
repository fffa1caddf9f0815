from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig
from .pipeline import run_pipeline
from .report import write_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="strokelab",
        description="Discretize, impute, rule-list and FCI analysis of the stroke dataset.",
    )
    p.add_argument("csv", help="Path to the stroke CSV file")
    p.add_argument("--config", help="YAML or TOML file with pipeline settings")
    p.add_argument("--out-dir", help="Directory for report.md, SBRL inputs and pag.dot")
    p.add_argument("--seed", type=int, help="Random seed for mixture fit, split and resampling")
    p.add_argument("--no-causal", action="store_true", help="Skip the FCI step")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = PipelineConfig.from_file(args.config) if args.config else PipelineConfig()
    config.data.path = args.csv
    if args.out_dir:
        config.out_dir = args.out_dir
    if args.seed is not None:
        config.seed = args.seed
    if args.no_causal:
        config.causal.enabled = False

    result = run_pipeline(config)
    path = write_report(result, Path(config.out_dir) / "report.md")
    logger.info("Report written to %s", path)
    return 0
