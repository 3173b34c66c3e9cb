"""
SVM solver engine.

Thin adapter over scikit-learn's libsvm-backed SVC/NuSVC. The harness treats
this as the external solver: it trains, predicts, cross-validates and checks
parameters, while the optimization itself stays inside scikit-learn.
"""

import logging
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.calibration import CalibratedClassifierCV
from sklearn.model_selection import KFold, PredefinedSplit
from sklearn.svm import SVC, NuSVC

from ..data.problem_builder import Problem, decode_record

logger = logging.getLogger(__name__)

SVM_TYPES = ('c_svc', 'nu_svc')
KERNEL_TYPES = ('linear', 'poly', 'rbf', 'sigmoid')


@dataclass(frozen=True)
class SVMParameters:
    """
    Solver configuration.

    gamma <= 0 selects 1/num_features, the libsvm default.
    """
    svm_type: str = 'c_svc'
    kernel: str = 'rbf'
    degree: int = 3
    gamma: float = 0.0
    coef0: float = 0.0
    nu: float = 0.5
    cache_size: float = 100.0
    C: float = 1.0
    eps: float = 1e-3
    shrinking: bool = True
    probability: bool = False
    class_weight: Optional[Dict[float, float]] = None

    @classmethod
    def from_config(cls, solver_config: Dict[str, Any]) -> 'SVMParameters':
        """Build parameters from the `solver` config section, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(solver_config) - known
        if unknown:
            logger.warning(f"Ignoring unknown solver settings: {sorted(unknown)}")
        return cls(**{k: v for k, v in solver_config.items() if k in known})

    def with_pair(self, C: float, gamma: float) -> 'SVMParameters':
        """Copy with only C and gamma overridden."""
        return replace(self, C=C, gamma=gamma)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Model = Union[SVC, NuSVC, CalibratedClassifierCV]

# Folds used to fit the sigmoid of probability models
CALIBRATION_FOLDS = 5


def _fit_predict_fold(estimator, features, labels, train, test):
    """Held-out predictions of one fold; (test indices, predictions)."""
    classes = np.unique(labels[train])
    if len(classes) == 1:
        # A single-class training fold can only ever predict that class
        return test, np.full(len(test), classes[0], dtype=np.float64)
    model = clone(estimator).fit(features[train], labels[train])
    return test, model.predict(features[test])


class SVMSolver:
    """
    Trains and queries SVM models.

    Args:
        quiet: Suppress libsvm's console output
        n_jobs: Worker count for the cross-validation primitive
    """

    def __init__(self, quiet: bool = True, n_jobs: int = 1):
        self.quiet = quiet
        self.n_jobs = n_jobs

    def set_quiet(self, quiet: bool = True) -> None:
        """Switch libsvm's training output off (or back on)."""
        self.quiet = quiet

    def check_parameters(self, problem: Problem, params: SVMParameters) -> Optional[str]:
        """
        Check a configuration against a problem.

        Returns:
            None if the parameters are usable, otherwise the reason they are not
        """
        if params.svm_type not in SVM_TYPES:
            return f"unknown svm type: {params.svm_type}"
        if params.kernel not in KERNEL_TYPES:
            return f"unknown kernel type: {params.kernel}"
        if params.gamma < 0:
            return "gamma < 0"
        if params.kernel == 'poly' and params.degree < 0:
            return "degree of polynomial kernel < 0"
        if params.cache_size <= 0:
            return "cache_size <= 0"
        if params.eps <= 0:
            return "eps <= 0"
        if params.svm_type == 'c_svc' and params.C <= 0:
            return "C <= 0"
        if params.svm_type == 'nu_svc' and not 0 < params.nu <= 1:
            return "nu <= 0 or nu > 1"

        if problem.n_samples == 0:
            return "no training samples"

        _, counts = np.unique(problem.labels, return_counts=True)
        if len(counts) < 2:
            return "training data must contain at least two classes"

        if params.svm_type == 'nu_svc':
            for i in range(len(counts)):
                for j in range(i + 1, len(counts)):
                    if params.nu * (counts[i] + counts[j]) / 2 > min(counts[i], counts[j]):
                        return "specified nu is infeasible"

        return None

    def create_estimator(self, params: SVMParameters) -> Model:
        """Create an unfitted scikit-learn estimator for the parameters."""
        common = dict(
            kernel=params.kernel,
            degree=params.degree,
            gamma=params.gamma if params.gamma > 0 else 'auto',
            coef0=params.coef0,
            tol=params.eps,
            cache_size=params.cache_size,
            shrinking=params.shrinking,
            class_weight=params.class_weight,
            verbose=not self.quiet,
            decision_function_shape='ovo',
        )
        if params.svm_type == 'nu_svc':
            return NuSVC(nu=params.nu, **common)
        return SVC(C=params.C, **common)

    def train(self, problem: Problem, params: SVMParameters) -> Model:
        """Train a model on every sample of the problem."""
        logger.debug(f"Training {params.svm_type}/{params.kernel} on {problem.n_samples} samples "
                     f"(C={params.C}, gamma={params.gamma})")
        model = self.create_estimator(params)

        if params.probability:
            # Platt scaling fitted on held-out decision values, final SVM on all samples
            _, counts = np.unique(problem.labels, return_counts=True)
            model = CalibratedClassifierCV(
                model,
                method='sigmoid',
                cv=max(2, min(CALIBRATION_FOLDS, int(counts.min()))),
                ensemble=False
            )

        model.fit(problem.dense, problem.labels)
        return model

    def predict(self, model: Model, nodes: np.ndarray) -> float:
        """Predict the label of one sentinel-terminated node record."""
        vector = decode_record(nodes, model.n_features_in_)
        return float(model.predict(vector.reshape(1, -1))[0])

    def predict_problem(self, model: Model, problem: Problem) -> np.ndarray:
        """Predict every sample of the problem, in order."""
        if problem.n_samples == 0:
            return np.empty(0, dtype=np.float64)
        return model.predict(problem.dense).astype(np.float64)

    def predict_probability(self, model: Model, nodes: np.ndarray) -> Tuple[float, Dict[float, float]]:
        """
        Predict one sample with per-class probability estimates.

        Requires a model trained with probability=True.
        """
        if not isinstance(model, CalibratedClassifierCV):
            raise ValueError("Model was not trained with probability estimates")
        vector = decode_record(nodes, model.n_features_in_).reshape(1, -1)
        probabilities = model.predict_proba(vector)[0]
        label = float(model.predict(vector)[0])
        return label, {float(c): float(p) for c, p in zip(model.classes_, probabilities)}

    def cross_validate(self, problem: Problem, params: SVMParameters, k: int,
                       folds: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Held-out predictions for every sample.

        Args:
            problem: Samples to cross-validate
            params: Solver parameters used for each fold
            k: Number of folds
            folds: Fold id per sample; contiguous folds when omitted

        Returns:
            Prediction per sample, indexed by original position
        """
        cv = PredefinedSplit(folds) if folds is not None else KFold(n_splits=k)
        estimator = self.create_estimator(params)
        features, labels = problem.dense, problem.labels

        fold_results = Parallel(n_jobs=self.n_jobs)(
            delayed(_fit_predict_fold)(estimator, features, labels, train, test)
            for train, test in cv.split(features, labels)
        )

        predictions = np.empty(problem.n_samples, dtype=np.float64)
        for test, fold_predictions in fold_results:
            predictions[test] = fold_predictions
        return predictions

    def class_count(self, model: Model) -> int:
        """Number of classes the model distinguishes."""
        return len(model.classes_)
