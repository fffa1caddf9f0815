from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from .diagnostics import ks_statistic

logger = logging.getLogger(__name__)


@dataclass
class Evaluation:
    """Held-out performance of a scored binary classifier."""

    auc: float
    threshold: float
    fpr: List[float] = field(repr=False)
    tpr: List[float] = field(repr=False)
    thresholds: List[float] = field(repr=False)
    confusion: Dict[str, int]
    sensitivity: float
    specificity: float
    ks: float

    @property
    def youden_j(self) -> float:
        return self.sensitivity + self.specificity - 1.0

    def to_dict(self) -> dict:
        return {
            "auc": self.auc,
            "threshold": self.threshold,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "youden_j": self.youden_j,
            "ks": self.ks,
            **self.confusion,
        }


def optimal_threshold(fpr: Sequence[float], tpr: Sequence[float], thresholds: Sequence[float]) -> float:
    """Threshold maximizing Youden's J (tpr - fpr); the first one wins on ties."""
    j = np.asarray(tpr, dtype=float) - np.asarray(fpr, dtype=float)
    thr = np.asarray(thresholds, dtype=float)
    finite = np.isfinite(thr)
    if not finite.any():
        raise ValueError("No finite threshold on the ROC curve")
    j = np.where(finite, j, -np.inf)
    return float(thr[int(np.argmax(j))])


def confusion_counts(y_true: Sequence[int], y_pred: Sequence[int]) -> Dict[str, int]:
    from sklearn.metrics import confusion_matrix

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return {"tn": int(tn), "fp": int(fp), "fn": int(fn), "tp": int(tp)}


def evaluate_scores(y_true: Sequence[int], scores: Sequence[float]) -> Evaluation:
    """ROC/AUC and the Youden-optimal operating point for 0/1 labels and scores."""
    from sklearn.metrics import roc_auc_score, roc_curve

    y = np.asarray(y_true, dtype=int)
    s = np.asarray(scores, dtype=float)
    if y.shape != s.shape:
        raise ValueError(f"y_true and scores differ in shape: {y.shape} vs {s.shape}")
    if len(np.unique(y)) != 2:
        raise ValueError("ROC evaluation needs both classes in y_true")

    fpr, tpr, thresholds = roc_curve(y, s)
    auc = float(roc_auc_score(y, s))
    threshold = optimal_threshold(fpr, tpr, thresholds)
    y_pred = (s >= threshold).astype(int)
    confusion = confusion_counts(y, y_pred)
    pos = confusion["tp"] + confusion["fn"]
    neg = confusion["tn"] + confusion["fp"]
    result = Evaluation(
        auc=auc,
        threshold=threshold,
        fpr=fpr.tolist(),
        tpr=tpr.tolist(),
        thresholds=thresholds.tolist(),
        confusion=confusion,
        sensitivity=confusion["tp"] / pos,
        specificity=confusion["tn"] / neg,
        ks=ks_statistic(y, s),
    )
    logger.info("AUC=%.4f at optimal threshold %.4f", result.auc, result.threshold)
    return result
