import argparse
import json
import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set, Tuple

import numpy as np

from svm_harness.data import MnistDataset, MnistReader, Problem, build_problem, normalize_dataset
from svm_harness.errors import (
    DatasetUnavailable,
    HarnessError,
    PersistenceFailure,
    ShapeMismatch,
    SolverRejectedParameters,
    UnknownMode,
)
from svm_harness.evaluation import EvaluationResult, ModelEvaluator, plot_grid_heatmap
from svm_harness.training import (
    CrossValidator,
    GridSearchOptimizer,
    GridSpec,
    ModelPersistence,
    SVMParameters,
    SVMSolver,
    validate_fold_count,
)
from svm_harness.utils import Config, load_config, setup_logging_from_config


class RunMode(Enum):
    """What a run does besides evaluating the active model."""
    TRAIN = 'train'
    LOAD = 'load'
    CROSS_VALIDATE = 'cross'
    GRID_SEARCH = 'grid'


MODE_TOKENS = {
    'train': RunMode.TRAIN,
    'load': RunMode.LOAD,
    'cross': RunMode.CROSS_VALIDATE,
    'cross-validate': RunMode.CROSS_VALIDATE,
    'grid': RunMode.GRID_SEARCH,
    'grid-search': RunMode.GRID_SEARCH,
}

# libsvm grid.py defaults: C = 2^-5 .. 2^15, gamma = 2^3 .. 2^-15
DEFAULT_C_GRID = {'first': 2.0 ** -5, 'last': 2.0 ** 15, 'steps': 11}
DEFAULT_GAMMA_GRID = {'first': 2.0 ** 3, 'last': 2.0 ** -15, 'steps': 10}


def parse_modes(tokens: Iterable[Any]) -> Set[RunMode]:
    """
    Translate mode tokens ('load', 'cross', 'grid', ...) into RunModes.

    Raises:
        UnknownMode: For any unrecognized token
    """
    modes = set()
    for token in tokens:
        if isinstance(token, RunMode):
            modes.add(token)
            continue
        mode = MODE_TOKENS.get(str(token).strip().lower())
        if mode is None:
            raise UnknownMode(f"Unknown mode: {token}. Available: {sorted(MODE_TOKENS)}")
        modes.add(mode)
    return modes


class ExperimentPipeline:
    """
    Runs one SVM experiment: read the dataset, build problems, train or load
    a model, evaluate it, and optionally cross-validate and grid search.

    Collaborators can be injected; by default the MNIST reader, the
    scikit-learn solver and joblib persistence are used.
    """

    AVAILABLE_MODES = tuple(MODE_TOKENS)

    def __init__(self,
                 config: Config,
                 dataset_source=None,
                 solver: Optional[SVMSolver] = None,
                 persistence: Optional[ModelPersistence] = None):
        """Initialize pipeline with configuration and collaborators."""
        self.config = config
        self.logger = logging.getLogger('ExperimentPipeline')

        data_config = config.data
        solver_config = config.solver
        cv_config = config.cross_validation
        grid_config = config.grid_search

        self.dataset_source = dataset_source or MnistReader(data_config.get('data_dir', 'data/mnist'))
        self.solver = solver or SVMSolver(
            quiet=solver_config.get('quiet', True),
            n_jobs=cv_config.get('n_jobs', 1)
        )
        self.persistence = persistence or ModelPersistence()

        # Components built on the solver
        self.parameters = SVMParameters.from_config(solver_config.get('parameters', {}) or {})
        self.evaluator = ModelEvaluator(self.solver)
        self.cross_validator = CrossValidator(self.solver, shuffle_seed=cv_config.get('shuffle_seed'))
        self.grid_optimizer = GridSearchOptimizer(
            self.cross_validator,
            n_jobs=grid_config.get('n_jobs', 1),
            show_progress=grid_config.get('show_progress', True)
        )

        # Output locations
        self.output_dir = Path(config.output.get('dir', 'output'))
        self.model_path = Path(config.persistence.get('model_path', 'output/models/svm_mnist.model'))

    @property
    def cv_folds(self) -> int:
        return int(self.config.cross_validation.get('folds', 5))

    @property
    def grid_folds(self) -> int:
        return int(self.config.grid_search.get('folds', self.cv_folds))

    def _grid_specs(self) -> Tuple[GridSpec, GridSpec]:
        grid_config = self.config.grid_search
        return (GridSpec.from_config(grid_config.get('c', DEFAULT_C_GRID)),
                GridSpec.from_config(grid_config.get('gamma', DEFAULT_GAMMA_GRID)))

    def run(self, modes: Iterable[Any] = ('train',)) -> Dict[str, Any]:
        """
        Run the experiment.

        Args:
            modes: Mode tokens or RunModes. 'load' replaces training with
                loading the persisted model; 'cross' and 'grid' run in
                addition to train/load.

        Returns:
            Dictionary with evaluation, cross-validation and grid search results
        """
        modes = parse_modes(modes)
        mode_names = sorted(m.value for m in modes) or ['train']

        self.logger.info("=" * 80)
        self.logger.info(f"STARTING EXPERIMENT - MODES: {', '.join(mode_names)}")
        self.logger.info("=" * 80)

        # Read and normalize, then convert to solver problems
        dataset = self._load_dataset()
        train_problem, test_problem = self._build_problems(dataset)
        # Reject bad parameters, fold counts and grids before any training
        self._check_parameters(train_problem)
        self._validate_requested_work(modes, train_problem)

        model, trained = self._obtain_model(modes, train_problem)

        results: Dict[str, Any] = {
            'modes': mode_names,
            'model_source': 'trained' if trained else 'loaded',
            'class_count': self.solver.class_count(model),
        }

        evaluations = self._evaluate(model, train_problem, test_problem)
        results['evaluation'] = {name: result.to_dict() for name, result in evaluations.items()}

        if RunMode.CROSS_VALIDATE in modes:
            results['cross_validation'] = self._run_cross_validation(train_problem)

        if RunMode.GRID_SEARCH in modes:
            results['grid_search'] = self._run_grid_search(train_problem)

        # A loaded model is never written back
        if trained:
            results['model_path'] = str(self._save_model(model, train_problem))

        self._write_reports(results, evaluations)

        self.logger.info("=" * 80)
        self.logger.info("EXPERIMENT COMPLETED SUCCESSFULLY")
        self.logger.info("=" * 80)

        return results

    def _load_dataset(self) -> MnistDataset:
        data_config = self.config.data
        dataset = self.dataset_source.read_dataset(
            training_limit=data_config.get('read_limit'),
            test_limit=data_config.get('test_read_limit')
        )

        if dataset.is_empty():
            raise DatasetUnavailable("Impossible to read the dataset: no training samples")

        normalize_dataset(dataset,
                          method=data_config.get('normalization', 'none'),
                          threshold=data_config.get('binarize_threshold', 30.0))
        return dataset

    def _build_problems(self, dataset: MnistDataset) -> Tuple[Problem, Problem]:
        data_config = self.config.data
        rng = np.random.default_rng(data_config.get('seed'))
        sparse = data_config.get('sparse', False)

        self.logger.info("Converting dataset to solver problems")
        train_problem = build_problem(
            dataset.training_labels,
            dataset.training_images,
            max_samples=data_config.get('max_samples'),
            shuffle=data_config.get('shuffle', True),
            rng=rng,
            sparse=sparse
        )
        test_problem = build_problem(
            dataset.test_labels,
            dataset.test_images,
            max_samples=data_config.get('test_max_samples'),
            shuffle=False,
            sparse=sparse
        )

        self.logger.info(f"Training problem: {train_problem.n_samples} samples, "
                         f"test problem: {test_problem.n_samples} samples, "
                         f"{train_problem.dimension} features")
        return train_problem, test_problem

    def _check_parameters(self, problem: Problem) -> None:
        error = self.solver.check_parameters(problem, self.parameters)
        if error:
            raise SolverRejectedParameters(f"Solver rejected parameters: {error}")

    def _validate_requested_work(self, modes: Set[RunMode], problem: Problem) -> None:
        """Reject bad fold counts and grid specs before any model is trained."""
        if RunMode.CROSS_VALIDATE in modes:
            validate_fold_count(self.cv_folds, problem.n_samples)
        if RunMode.GRID_SEARCH in modes:
            self._grid_specs()
            validate_fold_count(self.grid_folds, problem.n_samples)

    def _obtain_model(self, modes: Set[RunMode], problem: Problem):
        """Load the persisted model or train a new one; returns (model, trained)."""
        if RunMode.LOAD in modes:
            try:
                model = self.persistence.load(self.model_path)
            except PersistenceFailure as e:
                if not self.config.persistence.get('fallback_to_training', True):
                    raise
                self.logger.warning(f"{e}; training a new model instead")
            else:
                if model.n_features_in_ != problem.dimension:
                    raise ShapeMismatch(f"Loaded model expects {model.n_features_in_} features, "
                                        f"problem has {problem.dimension}")
                self.logger.info(f"Using loaded model ({self.solver.class_count(model)} classes)")
                return model, False

        self.logger.info(f"Training SVM on {problem.n_samples} samples")
        model = self.solver.train(problem, self.parameters)
        self.logger.info(f"Trained model distinguishes {self.solver.class_count(model)} classes")
        return model, True

    def _evaluate(self, model, train_problem: Problem, test_problem: Problem) -> Dict[str, EvaluationResult]:
        evaluations = {'training': self.evaluator.evaluate(train_problem, model, name='training')}
        if test_problem.n_samples:
            evaluations['test'] = self.evaluator.evaluate(test_problem, model, name='test')
        else:
            self.logger.warning("Test split is empty, skipping test evaluation")
        return evaluations

    def _run_cross_validation(self, problem: Problem) -> Dict[str, Any]:
        k = self.cv_folds
        self.logger.info(f"Running {k}-fold cross-validation")
        accuracy_pct = self.cross_validator.cross_validate(problem, self.parameters, k)
        self.logger.info(f"Cross-validation accuracy: {accuracy_pct:.2f}%")
        return {'folds': k, 'accuracy_pct': accuracy_pct}

    def _run_grid_search(self, problem: Problem) -> Dict[str, Any]:
        c_spec, gamma_spec = self._grid_specs()
        result = self.grid_optimizer.search(
            problem,
            self.parameters,
            self.grid_folds,
            c_spec,
            gamma_spec,
            refinements=int(self.config.grid_search.get('refinements', 0))
        )

        summary = result.to_dict()
        if self.config.output.get('plot_grid', True):
            heatmap = plot_grid_heatmap(result, self.output_dir / 'grid_search_heatmap.png')
            if heatmap:
                summary['heatmap'] = str(heatmap)
        return summary

    def _save_model(self, model, problem: Problem) -> Path:
        metadata = {
            'parameters': self.parameters.to_dict(),
            'class_count': self.solver.class_count(model),
            'training_samples': problem.n_samples,
            'feature_dimension': problem.dimension,
        }
        if not self.persistence.save(model, self.model_path, metadata):
            raise PersistenceFailure(f"Could not save model to {self.model_path}")
        return self.model_path

    def _write_reports(self, results: Dict[str, Any], evaluations: Dict[str, EvaluationResult]) -> None:
        if not self.config.output.get('save_report', True):
            return

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.evaluator.save_evaluation_results(evaluations, self.output_dir)

        extra = {}
        if 'cross_validation' in results:
            extra['cross-validation accuracy'] = f"{results['cross_validation']['accuracy_pct']:.2f}%"
        if 'grid_search' in results:
            best = results['grid_search']['best']
            extra['grid search best'] = (f"C={best['C']:.6g}, gamma={best['gamma']:.6g}, "
                                         f"{results['grid_search']['best_accuracy_pct']:.2f}%")
        self.evaluator.generate_evaluation_report(evaluations, self.output_dir, extra)

        report_path = self.output_dir / 'run_report.json'
        with open(report_path, 'w') as f:
            json.dump({'timestamp': datetime.now().isoformat(), **results}, f, indent=2, default=str)
        self.logger.info(f"Run report written to {report_path}")


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='SVM experiment harness: train, evaluate, cross-validate and grid search',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        'modes',
        nargs='*',
        default=['train'],
        help=f"Run modes: {', '.join(MODE_TOKENS)}"
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration YAML file'
    )

    parser.add_argument(
        '--data-dir',
        default=None,
        help='Directory holding the MNIST IDX files (overrides data.data_dir)'
    )

    parser.add_argument(
        '--max-samples',
        type=int,
        default=None,
        help='Maximum number of training samples (overrides data.max_samples)'
    )

    parser.add_argument(
        '--model-path',
        default=None,
        help='Model file to save or load (overrides persistence.model_path)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Shuffle seed (overrides data.seed)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the harness."""
    args = parse_arguments(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return 1

    if args.data_dir is not None:
        config.set('data', 'data_dir', args.data_dir)
    if args.max_samples is not None:
        config.set('data', 'max_samples', args.max_samples)
    if args.model_path is not None:
        config.set('persistence', 'model_path', args.model_path)
    if args.seed is not None:
        config.set('data', 'seed', args.seed)

    setup_logging_from_config(config.system, verbose=args.verbose)
    logger = logging.getLogger('ExperimentPipeline')

    try:
        pipeline = ExperimentPipeline(config)
        results = pipeline.run(args.modes)

        print("=" * 80)
        print("EXPERIMENT SUMMARY")
        print("=" * 80)
        for name, evaluation in results['evaluation'].items():
            print(f"{name.upper()}: {evaluation['correct']}/{evaluation['total']} correct, "
                  f"accuracy {evaluation['accuracy_pct']:.2f}%, error {evaluation['error_pct']:.2f}%")
        if 'cross_validation' in results:
            print(f"CROSS-VALIDATION ({results['cross_validation']['folds']} folds): "
                  f"{results['cross_validation']['accuracy_pct']:.2f}%")
        if 'grid_search' in results:
            best = results['grid_search']['best']
            print(f"GRID SEARCH BEST: C={best['C']:.6g} gamma={best['gamma']:.6g} "
                  f"({results['grid_search']['best_accuracy_pct']:.2f}%)")
        print("=" * 80)

        return 0

    except HarnessError as e:
        logger.error(f"Experiment failed: {e}")
        return 1

    except KeyboardInterrupt:
        print("\nExperiment interrupted by user")
        return 1

    except Exception as e:
        print(f"\nExperiment failed: {e}")
        logging.exception("Full error trace:")
        return 1

    finally:
        logging.shutdown()


if __name__ == "__main__":
    sys.exit(main())
