"""
Training module for the SVM experiment harness.

Provides:
- The solver engine adapter and its parameters
- k-fold cross-validation
- Geometric grid search over C and gamma
- Model persistence
"""

from .solver import SVMParameters, SVMSolver
from .cross_validator import CrossValidator, assign_folds, validate_fold_count
from .grid_search import GridSearchOptimizer, GridSearchResult, GridPoint, GridSpec, generate_geo, refine_spec
from .model_persistence import ModelPersistence

__all__ = [
    'SVMParameters',
    'SVMSolver',
    'CrossValidator',
    'assign_folds',
    'validate_fold_count',
    'GridSearchOptimizer',
    'GridSearchResult',
    'GridPoint',
    'GridSpec',
    'generate_geo',
    'refine_spec',
    'ModelPersistence',
]
