from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

import polars as pl

from .pipeline import PipelineResult


def _table(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> List[str]:
    def fmt(v: object) -> str:
        if v is None:
            return "(missing)"
        if isinstance(v, float):
            return f"{v:.4f}"
        return str(v)

    lines = ["| " + " | ".join(headers) + " |", "|" + "---|" * len(headers)]
    for row in rows:
        lines.append("| " + " | ".join(fmt(v) for v in row) + " |")
    return lines


def _frame_table(df: pl.DataFrame) -> List[str]:
    return _table(df.columns, df.rows())


def render_report(result: PipelineResult) -> str:
    """Render the analysis as a Markdown document."""
    cfg = result.config
    ev = result.evaluation
    out: List[str] = ["# Stroke incidence analysis", ""]

    out += ["## Data", ""]
    out.append(
        f"{result.n_loaded} records loaded; {result.n_dropped} dropped for missing BMI; "
        f"{result.cleaned.height} records analysed."
    )
    out += ["", "### Missing values (%)", ""]
    missing = result.missing.filter(pl.col("missing_pct") > 0)
    out += _frame_table(missing) if missing.height else ["None."]

    out += ["", "## Discretization", ""]
    for column, counts in result.bucket_counts.items():
        out += [f"### {column}", ""]
        out += _frame_table(counts)
        out.append("")
    out += ["Glucose mixture quartile cut points:", ""]
    out += _table(["component", "q1", "q3"], [(k, v[0], v[1]) for k, v in result.glucose_cut_points.items()])

    out += ["", "### Information value against the outcome", ""]
    ivs = sorted(result.information_values.items(), key=lambda kv: kv[1], reverse=True)
    out += _table(["feature", "iv"], ivs)

    out += ["", "## Resampling", ""]
    out += _table(
        ["class", "before", "after"],
        [(k, result.balance_before.get(k, 0), result.balance_after.get(k, 0)) for k in sorted(result.balance_after)],
    )

    out += ["", "## Rule list", "", "```", result.rules.strip(), "```", ""]

    out += ["## Evaluation (held-out)", ""]
    out += _table(
        ["metric", "value"],
        [
            ("AUC", ev.auc),
            ("optimal threshold", ev.threshold),
            ("sensitivity", ev.sensitivity),
            ("specificity", ev.specificity),
            ("KS", ev.ks),
        ],
    )
    out += ["", "Confusion matrix at the optimal threshold:", ""]
    c = ev.confusion
    out += _table(["", "predicted 0", "predicted 1"], [("actual 0", c["tn"], c["fp"]), ("actual 1", c["fn"], c["tp"])])

    out += ["", "## Causal structure (FCI)", ""]
    if result.pag is None:
        out.append("Skipped.")
    else:
        out.append(
            f"Test `{cfg.causal.indep_test}`, alpha {cfg.causal.alpha}; "
            f"{len(result.pag.edges)} edge(s) among {len(result.pag.nodes)} variables."
        )
        out.append("")
        out += _frame_table(result.pag.to_frame()) if result.pag.edges else ["No edges."]
        out += ["", "```dot", result.pag.to_dot().rstrip(), "```"]
    out.append("")
    return "\n".join(out)


def write_report(result: PipelineResult, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_report(result), encoding="utf-8")
    return path
