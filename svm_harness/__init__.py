"""SVM experiment harness: problem building, evaluation, cross-validation and grid search."""

__version__ = "0.1.0"
