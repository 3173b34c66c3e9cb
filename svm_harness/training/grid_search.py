"""
Exponential grid search over the C and gamma hyperparameters.

Every (C, gamma) grid point is scored by k-fold cross-validation. Points are
scanned row-major (C outer, gamma inner) and the first point with the highest
accuracy wins. Points can be scored by a joblib worker pool; results are
still consumed in scan order, so the outcome does not depend on which worker
finishes first.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from joblib import Parallel, delayed
from tqdm import tqdm

from ..data.problem_builder import Problem
from ..errors import DegenerateGridSpec
from .solver import SVMParameters

logger = logging.getLogger(__name__)


def generate_geo(first: float, last: float, steps: int) -> List[float]:
    """
    Geometric sequence of `steps` values from first to last inclusive.

    value[i] = first * (last / first) ** (i / (steps - 1))
    """
    if steps < 2:
        raise DegenerateGridSpec(f"A geometric sequence needs at least 2 steps, got {steps}")
    if first <= 0 or last <= 0:
        raise DegenerateGridSpec(f"Geometric sequence bounds must be positive, got {first} and {last}")

    ratio = last / first
    return [first * ratio ** (i / (steps - 1)) for i in range(steps)]


@dataclass(frozen=True)
class GridSpec:
    """First value, last value and number of points of one grid axis."""
    first: float
    last: float
    steps: int

    def __post_init__(self):
        # Raises DegenerateGridSpec
        generate_geo(self.first, self.last, self.steps)

    @classmethod
    def from_config(cls, axis_config: Dict[str, Any]) -> 'GridSpec':
        return cls(first=float(axis_config['first']),
                   last=float(axis_config['last']),
                   steps=int(axis_config['steps']))

    def values(self) -> List[float]:
        return generate_geo(self.first, self.last, self.steps)

    @property
    def step_ratio(self) -> float:
        return (self.last / self.first) ** (1 / (self.steps - 1))


def refine_spec(spec: GridSpec, center: float) -> GridSpec:
    """
    Narrower spec around `center`, spanning one coarse step on each side.

    Keeps the step count, so each refinement level scans as many points as
    the coarse grid.
    """
    ratio = spec.step_ratio
    return GridSpec(first=center / ratio, last=center * ratio, steps=spec.steps)


@dataclass(frozen=True)
class GridPoint:
    """Cross-validation accuracy of one (C, gamma) pair."""
    C: float
    gamma: float
    accuracy_pct: float


@dataclass
class GridSearchResult:
    """Outcome of a grid search."""
    best: Tuple[float, float]
    best_accuracy_pct: float
    all_results: List[GridPoint] = field(default_factory=list)
    grid_size: int = 0
    levels: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'best': {'C': self.best[0], 'gamma': self.best[1]},
            'best_accuracy_pct': self.best_accuracy_pct,
            'grid_size': self.grid_size,
            'levels': self.levels,
            'all_results': [
                {'C': p.C, 'gamma': p.gamma, 'accuracy_pct': p.accuracy_pct}
                for p in self.all_results
            ],
        }


class GridSearchOptimizer:
    """
    Searches a geometric (C, gamma) grid with repeated cross-validation.

    Args:
        cross_validator: Object exposing validate() and cross_validate()
        n_jobs: joblib worker count for scoring grid points (1 = sequential)
        show_progress: Display a tqdm progress bar
    """

    def __init__(self, cross_validator, n_jobs: int = 1, show_progress: bool = True):
        self.cross_validator = cross_validator
        self.n_jobs = n_jobs
        self.show_progress = show_progress

    def _scan(self, problem: Problem, base_params: SVMParameters, k: int,
              c_spec: GridSpec, gamma_spec: GridSpec, level: int) -> List[GridPoint]:
        pairs = [(c, gamma) for c in c_spec.values() for gamma in gamma_spec.values()]

        accuracies = Parallel(n_jobs=self.n_jobs, return_as='generator')(
            delayed(self.cross_validator.cross_validate)(problem, base_params.with_pair(c, gamma), k)
            for c, gamma in pairs
        )

        points = []
        with tqdm(total=len(pairs), desc=f'Grid search (level {level})', disable=not self.show_progress) as progress:
            for (c, gamma), accuracy in zip(pairs, accuracies):
                point = GridPoint(C=c, gamma=gamma, accuracy_pct=float(accuracy))
                points.append(point)
                logger.info(f"C={c:.6g} gamma={gamma:.6g} accuracy={point.accuracy_pct:.2f}%")
                progress.update(1)
        return points

    def search(self,
               problem: Problem,
               base_params: SVMParameters,
               k: int,
               c_spec: GridSpec,
               gamma_spec: GridSpec,
               refinements: int = 0) -> GridSearchResult:
        """
        Run the grid search.

        Args:
            problem: Training problem to cross-validate on
            base_params: Solver parameters; C and gamma are overridden per point
            k: Number of cross-validation folds
            c_spec: Grid for C
            gamma_spec: Grid for gamma
            refinements: Number of finer grids scanned around the best point
                after the coarse grid

        Returns:
            GridSearchResult with the best pair and every scored point in scan order
        """
        if refinements < 0:
            raise ValueError(f"refinements must be non-negative, got {refinements}")

        self.cross_validator.validate(problem, base_params, k)

        grid_size = c_spec.steps * gamma_spec.steps
        logger.info(f"Grid search: {c_spec.steps} C x {gamma_spec.steps} gamma values, "
                    f"{k}-fold CV, {refinements} refinement level(s)")

        all_results: List[GridPoint] = []
        best: Optional[GridPoint] = None

        for level in range(refinements + 1):
            for point in self._scan(problem, base_params, k, c_spec, gamma_spec, level):
                all_results.append(point)
                if best is None or point.accuracy_pct > best.accuracy_pct:
                    best = point

            c_spec = refine_spec(c_spec, best.C)
            gamma_spec = refine_spec(gamma_spec, best.gamma)

        logger.info(f"Best: C={best.C:.6g} gamma={best.gamma:.6g} accuracy={best.accuracy_pct:.2f}%")

        return GridSearchResult(
            best=(best.C, best.gamma),
            best_accuracy_pct=best.accuracy_pct,
            all_results=all_results,
            grid_size=grid_size,
            levels=refinements + 1
        )
