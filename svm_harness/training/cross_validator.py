"""
k-fold cross-validation accuracy estimation.
"""

import logging
from typing import Optional

import numpy as np

from ..data.problem_builder import Problem
from ..errors import InvalidFoldCount, SolverRejectedParameters
from ..evaluation.metrics import compute_accuracy
from .solver import SVMParameters

logger = logging.getLogger(__name__)


def validate_fold_count(k: int, n_samples: int) -> None:
    """Raise InvalidFoldCount unless 2 <= k <= n_samples."""
    if k < 2 or k > n_samples:
        raise InvalidFoldCount(f"Fold count must lie in [2, {n_samples}], got {k}")


def assign_folds(n_samples: int, k: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Map every sample index to a fold id in [0, k).

    Folds are contiguous index ranges whose sizes differ by at most one. With
    a random source the same fold sizes are kept but ids are shuffled over
    the samples.
    """
    validate_fold_count(k, n_samples)
    folds = np.arange(n_samples) * k // n_samples
    if rng is not None:
        folds = rng.permutation(folds)
    return folds


class CrossValidator:
    """
    Estimates accuracy from held-out predictions of k-fold cross-validation.

    Args:
        solver: Solver engine providing check_parameters and cross_validate
        shuffle_seed: When set, fold ids are shuffled with a generator seeded
            by this value (the same assignment on every call); otherwise
            folds are contiguous
    """

    def __init__(self, solver, shuffle_seed: Optional[int] = None):
        self.solver = solver
        self.shuffle_seed = shuffle_seed

    def validate(self, problem: Problem, params: SVMParameters, k: int) -> None:
        """Check the fold count and the solver parameters without training."""
        validate_fold_count(k, problem.n_samples)
        error = self.solver.check_parameters(problem, params)
        if error:
            raise SolverRejectedParameters(f"Solver rejected parameters: {error}")

    def cross_validate(self, problem: Problem, params: SVMParameters, k: int) -> float:
        """
        Cross-validation accuracy of the parameters on the problem.

        Returns:
            Percentage of samples whose held-out prediction matched the label
        """
        self.validate(problem, params, k)

        # A fresh generator per call gives the same folds for every grid point
        rng = np.random.default_rng(self.shuffle_seed) if self.shuffle_seed is not None else None
        folds = assign_folds(problem.n_samples, k, rng)

        predictions = self.solver.cross_validate(problem, params, k, folds=folds)
        accuracy_pct = compute_accuracy(problem.labels, predictions).accuracy_pct

        logger.debug(f"{k}-fold CV (C={params.C}, gamma={params.gamma}): {accuracy_pct:.2f}%")
        return accuracy_pct
