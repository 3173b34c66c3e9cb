"""
Model Evaluation for the SVM Experiment Harness
===============================================

Measures the accuracy of a trained model over a problem and writes the
results as JSON and as a plain-text report.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..data.problem_builder import Problem
from ..errors import EmptyProblem
from .metrics import EvaluationResult, compute_accuracy


class ModelEvaluator:
    """
    Runs prediction over every sample of a problem and counts exact matches.
    """

    def __init__(self, solver, logger: Optional[logging.Logger] = None):
        self.solver = solver
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, problem: Problem, model, name: str = 'problem') -> EvaluationResult:
        """
        Evaluate a trained model against a problem.

        Args:
            problem: Samples with their true labels
            model: Trained solver model
            name: Label used in log output

        Returns:
            EvaluationResult with counts and percentages

        Raises:
            EmptyProblem: If the problem has no samples
        """
        if problem.n_samples == 0:
            raise EmptyProblem(f"Cannot evaluate on empty {name} set")

        predictions = self.solver.predict_problem(model, problem)
        result = compute_accuracy(problem.labels, predictions)

        self._log_evaluation_results(result, name)
        return result

    def save_evaluation_results(self,
                                results: Dict[str, EvaluationResult],
                                output_dir: str,
                                filename: str = "evaluation_results.json") -> Path:
        """
        Save evaluation results as JSON.

        Args:
            results: Evaluation results keyed by set name ('training', 'test')
            output_dir: Output directory path
            filename: Output filename

        Returns:
            Path to the written file
        """
        evaluations_dir = Path(output_dir) / "evaluations"
        evaluations_dir.mkdir(parents=True, exist_ok=True)
        results_path = evaluations_dir / filename

        with open(results_path, 'w') as f:
            json.dump({name: result.to_dict() for name, result in results.items()}, f, indent=2)

        self.logger.info(f"Saved evaluation results to {results_path}")
        return results_path

    def generate_evaluation_report(self,
                                   results: Dict[str, EvaluationResult],
                                   output_dir: str,
                                   extra: Optional[Dict[str, Any]] = None) -> Path:
        """
        Generate a human-readable evaluation report.

        Args:
            results: Evaluation results keyed by set name
            output_dir: Output directory path
            extra: Additional lines (e.g. cross-validation accuracy) as key/value pairs

        Returns:
            Path to generated report file
        """
        evaluations_dir = Path(output_dir) / "evaluations"
        evaluations_dir.mkdir(parents=True, exist_ok=True)
        report_path = evaluations_dir / "evaluation_report.txt"

        with open(report_path, 'w') as f:
            f.write("SVM Classifier - Evaluation Report\n")
            f.write("=" * 50 + "\n\n")
            for name, result in results.items():
                f.write(f"{name.upper()} SET:\n")
                f.write(f"  Samples: {result.total}\n")
                f.write(f"  Correct: {result.correct}\n")
                f.write(f"  Accuracy: {result.accuracy_pct:.2f}%\n")
                f.write(f"  Error rate: {result.error_pct:.2f}%\n\n")
            if extra:
                f.write("ADDITIONAL RESULTS:\n")
                for key, value in extra.items():
                    f.write(f"  {key}: {value}\n")

        self.logger.info(f"Generated evaluation report: {report_path}")
        return report_path

    def _log_evaluation_results(self, result: EvaluationResult, name: str) -> None:
        """Log evaluation results to console."""
        self.logger.info(f"Evaluation on {name} set:")
        self.logger.info(f"  Samples: {result.total}")
        self.logger.info(f"  Correct: {result.correct}")
        self.logger.info(f"  Accuracy: {result.accuracy_pct:.2f}%")
        self.logger.info(f"  Error rate: {result.error_pct:.2f}%")
