from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from .base import _categorical_columns, _ensure_polars_df, _require_columns

logger = logging.getLogger(__name__)

DISCRETE_TESTS = ("chisq", "gsq")

_LEFT = {"TAIL": "-", "ARROW": "<", "CIRCLE": "o"}
_RIGHT = {"TAIL": "-", "ARROW": ">", "CIRCLE": "o"}


@dataclass
class PAG:
    """Partial ancestral graph: node names plus marked edges ``(node1, node2, mark)``.

    Marks read left to right, e.g. ``"o->"`` means a circle at node1 and an
    arrowhead at node2.
    """

    nodes: List[str]
    edges: List[Tuple[str, str, str]] = field(default_factory=list)

    def to_frame(self) -> pl.DataFrame:
        return pl.DataFrame(
            {
                "node1": [e[0] for e in self.edges],
                "mark": [e[2] for e in self.edges],
                "node2": [e[1] for e in self.edges],
            },
            schema={"node1": pl.Utf8, "mark": pl.Utf8, "node2": pl.Utf8},
        )

    def adjacent(self, a: str, b: str) -> bool:
        return any({a, b} == {u, v} for u, v, _ in self.edges)

    def to_dot(self) -> str:
        arrowheads = {"<": "normal", ">": "normal", "o": "odot", "-": "none"}
        lines = ["digraph PAG {"]
        for name in self.nodes:
            lines.append(f'  "{name}";')
        for u, v, mark in self.edges:
            tail, head = arrowheads[mark[0]], arrowheads[mark[-1]]
            lines.append(f'  "{u}" -> "{v}" [dir=both, arrowtail={tail}, arrowhead={head}];')
        lines.append("}")
        return "\n".join(lines) + "\n"


def edge_mark(endpoint1: str, endpoint2: str) -> str:
    """Mark for an edge given endpoint names (TAIL/ARROW/CIRCLE) at node1 and node2."""
    return f"{_LEFT[endpoint1]}-{_RIGHT[endpoint2]}"


def encode_discrete(df: pl.DataFrame, columns: Sequence[str]) -> np.ndarray:
    """Integer-code categorical columns (bucket order for Enums, sorted otherwise)."""
    codes = []
    for col in columns:
        s = df.get_column(col)
        if isinstance(s.dtype, pl.Enum):
            codes.append(s.to_physical().cast(pl.Int64).to_numpy())
            continue
        text = s.cast(pl.Utf8)
        lookup = {v: i for i, v in enumerate(sorted(text.unique().to_list()))}
        codes.append(np.array([lookup[v] for v in text.to_list()], dtype=np.int64))
    return np.column_stack(codes)


class CausalStructureLearner:
    """FCI over discrete columns with user-specified edge constraints.

    - forbidden / required: ``(cause, effect)`` pairs
    - tiers: ordered groups of variables; nothing in a later tier may cause
      something in an earlier one
    """

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        indep_test: str = "chisq",
        alpha: float = 0.05,
        depth: int = -1,
        forbidden: Sequence[Tuple[str, str]] = (),
        required: Sequence[Tuple[str, str]] = (),
        tiers: Sequence[Sequence[str]] = (),
    ) -> None:
        if indep_test not in DISCRETE_TESTS:
            raise ValueError(f"indep_test must be one of {DISCRETE_TESTS}, got '{indep_test}'")
        if not 0.0 < alpha < 1.0:
            raise ValueError("alpha must be in (0, 1)")
        self.columns = None if columns is None else list(columns)
        self.indep_test = indep_test
        self.alpha = float(alpha)
        self.depth = int(depth)
        self.forbidden = [tuple(p) for p in forbidden]
        self.required = [tuple(p) for p in required]
        self.tiers = [list(t) for t in tiers]

    def _check_names(self, columns: Sequence[str]) -> None:
        known = set(columns)
        named = [n for pair in self.forbidden + self.required for n in pair]
        named += [n for tier in self.tiers for n in tier]
        unknown = sorted(set(named) - known)
        if unknown:
            raise ValueError(f"Edge constraints name unknown variables: {', '.join(unknown)}")

    def background_knowledge(self, columns: Sequence[str]):
        from causallearn.graph.GraphNode import GraphNode
        from causallearn.utils.PCUtils.BackgroundKnowledge import BackgroundKnowledge

        self._check_names(columns)
        nodes: Dict[str, GraphNode] = {name: GraphNode(name) for name in columns}
        bk = BackgroundKnowledge()
        for cause, effect in self.forbidden:
            bk.add_forbidden_by_node(nodes[cause], nodes[effect])
        for cause, effect in self.required:
            bk.add_required_by_node(nodes[cause], nodes[effect])
        for tier, names in enumerate(self.tiers):
            for name in names:
                bk.add_node_to_tier(nodes[name], tier)
        return bk

    def fit(self, df: pl.DataFrame) -> PAG:
        from causallearn.search.ConstraintBased.FCI import fci

        df = _ensure_polars_df(df)
        columns = self.columns if self.columns is not None else _categorical_columns(df)
        _require_columns(df, columns)
        frame = df.select(columns)
        if frame.null_count().sum_horizontal().item():
            raise ValueError("Causal discovery requires a frame without missing values")

        data = encode_discrete(frame, columns)
        bk = self.background_knowledge(columns)
        logger.info(
            "Running FCI on %d records x %d variables (%s, alpha=%.3f)",
            data.shape[0], data.shape[1], self.indep_test, self.alpha,
        )
        graph, edges = fci(
            data,
            self.indep_test,
            self.alpha,
            depth=self.depth,
            background_knowledge=bk,
            show_progress=False,
            node_names=list(columns),
        )
        pag = PAG(nodes=list(columns))
        for edge in edges:
            pag.edges.append(
                (
                    edge.get_node1().get_name(),
                    edge.get_node2().get_name(),
                    edge_mark(edge.get_endpoint1().name, edge.get_endpoint2().name),
                )
            )
        self.graph_ = graph
        self.pag_ = pag
        logger.info("FCI found %d edge(s)", len(pag.edges))
        return pag
