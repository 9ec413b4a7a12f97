import os
import warnings
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from .data_loader import NEGATIVE_LABEL, POSITIVE_LABEL
from .errors import DegenerateMetricWarning
from .model_trainer import FittedModel
from .plotting import plot_confusion_matrix
from .utils.logger import get_logger


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts of predicted x true labels for one positive class."""
    tp: int
    fn: int
    fp: int
    tn: int
    positive_label: str = POSITIVE_LABEL

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    @property
    def accuracy(self) -> float:
        return (self.tp + self.tn) / self.total

    @property
    def error_rate(self) -> float:
        return (self.fp + self.fn) / self.total

    @property
    def sensitivity(self) -> Optional[float]:
        """True-positive rate; None when there are no positive cases."""
        positives = self.tp + self.fn
        return self.tp / positives if positives else None

    @property
    def specificity(self) -> Optional[float]:
        """True-negative rate; None when there are no negative cases."""
        negatives = self.tn + self.fp
        return self.tn / negatives if negatives else None


@dataclass(frozen=True)
class MetricRow:
    method: str
    accuracy: float
    sensitivity: Optional[float]
    specificity: Optional[float]
    confusion: Optional[ConfusionMatrix] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)


class Evaluator:
    """Predict with a fitted model, build the confusion matrix, derive metrics.

    Degenerate sensitivity/specificity (zero or undefined) is kept in the
    row as-is, explained in its notes and raised as DegenerateMetricWarning.
    """

    def __init__(
        self,
        positive_label: str = POSITIVE_LABEL,
        negative_label: str = NEGATIVE_LABEL,
        figures_dir: Optional[str] = None,
        verbose: bool = True,
    ):
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.figures_dir = figures_dir
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def predict(self, model: FittedModel, X: pd.DataFrame) -> np.ndarray:
        """One label per record; forests use a per-tree majority vote.

        Ties go to the first class of the forest's sorted label order.
        """
        if model.kind == "tree":
            return np.asarray(model.pipeline.predict(X))

        forest = model.pipeline[-1]
        Xt = model.pipeline[:-1].transform(X)
        classes = forest.classes_

        # sub-estimators predict encoded class indices
        votes = np.stack([tree.predict(Xt) for tree in forest.estimators_]).astype(int)
        counts = np.stack([(votes == k).sum(axis=0) for k in range(len(classes))])
        return classes[np.argmax(counts, axis=0)]

    def confusion(self, y_true, y_pred) -> ConfusionMatrix:
        cm = confusion_matrix(
            np.asarray(y_true),
            np.asarray(y_pred),
            labels=[self.negative_label, self.positive_label],
        )
        tn, fp, fn, tp = (int(v) for v in cm.ravel())
        return ConfusionMatrix(tp=tp, fn=fn, fp=fp, tn=tn, positive_label=self.positive_label)

    def _degenerate_notes(self, cm: ConfusionMatrix) -> Tuple[str, ...]:
        notes = []
        for name, value, cases in (
            ("sensitivity", cm.sensitivity, self.positive_label),
            ("specificity", cm.specificity, self.negative_label),
        ):
            if value is None:
                notes.append(f"{name} undefined (no true '{cases}' cases)")
            elif value == 0.0:
                notes.append(f"{name} is 0 (no '{cases}' case predicted correctly)")
        return tuple(notes)

    def metrics(self, y_true, y_pred, method: str) -> MetricRow:
        """Compute accuracy/sensitivity/specificity from labels."""
        cm = self.confusion(y_true, y_pred)
        notes = self._degenerate_notes(cm)

        for note in notes:
            self.logger.warning(f"[{method}] {note}")
            warnings.warn(f"{method}: {note}", DegenerateMetricWarning, stacklevel=2)

        row = MetricRow(
            method=method,
            accuracy=cm.accuracy,
            sensitivity=cm.sensitivity,
            specificity=cm.specificity,
            confusion=cm,
            notes=notes,
        )

        if self.verbose:
            self.logger.info(
                f"[{method}] TP={cm.tp} FN={cm.fn} FP={cm.fp} TN={cm.tn} "
                f"accuracy={row.accuracy:.4f}"
            )

        if self.figures_dir:
            safe = "".join(c if c.isalnum() else "_" for c in method.lower())
            path = plot_confusion_matrix(
                cm,
                os.path.join(self.figures_dir, f"confusion_matrix_{safe}.png"),
                title=f"Confusion Matrix ({method})",
            )
            if self.verbose:
                self.logger.info(f"Saved confusion matrix: {path}")

        return row

    def evaluate(self, model: FittedModel, X_test: pd.DataFrame, y_test, method: str) -> MetricRow:
        y_pred = self.predict(model, X_test)
        return self.metrics(y_test, y_pred, method)
