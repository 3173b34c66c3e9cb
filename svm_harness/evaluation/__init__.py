"""
Evaluation Module for the SVM Experiment Harness
================================================

Accuracy evaluation, result reports and grid search plots.
"""

from .evaluator import ModelEvaluator
from .metrics import EvaluationResult, compute_accuracy
from .visualizer import plot_grid_heatmap

__all__ = [
    'ModelEvaluator',
    'EvaluationResult',
    'compute_accuracy',
    'plot_grid_heatmap',
]
