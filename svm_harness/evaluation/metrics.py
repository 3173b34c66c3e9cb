"""
Accuracy metrics shared by the evaluator and the cross-validator.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any

import numpy as np

from ..errors import EmptyProblem, ShapeMismatch


@dataclass(frozen=True)
class EvaluationResult:
    """Counts and percentages of one accuracy evaluation."""
    total: int
    correct: int
    accuracy_pct: float
    error_pct: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_accuracy(labels: np.ndarray, predictions: np.ndarray) -> EvaluationResult:
    """
    Compare predicted labels with true labels by exact equality.

    Raises:
        EmptyProblem: If there are no samples
        ShapeMismatch: If the two arrays differ in length
    """
    labels = np.asarray(labels)
    predictions = np.asarray(predictions)

    if len(labels) != len(predictions):
        raise ShapeMismatch(f"Got {len(predictions)} predictions for {len(labels)} labels")

    total = len(labels)
    if total == 0:
        raise EmptyProblem("Cannot compute accuracy of an empty problem")

    correct = int(np.count_nonzero(predictions == labels))
    accuracy_pct = 100.0 * correct / total

    return EvaluationResult(
        total=total,
        correct=correct,
        accuracy_pct=accuracy_pct,
        error_pct=100.0 - accuracy_pct
    )
