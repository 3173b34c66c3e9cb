import copy

import numpy as np
import pytest

from svm_harness.data import MnistDataset, build_problem
from svm_harness.training import SVMSolver
from svm_harness.utils import Config


def make_blobs(n_samples, n_classes, dimension=20, spread=0.1, scale=5.0, seed=0):
    """Well separated clusters; labels interleave (0, 1, ..., n_classes-1, 0, ...)."""
    rng = np.random.default_rng(seed)
    labels = np.arange(n_samples) % n_classes
    centers = np.zeros((n_classes, dimension))
    centers[np.arange(n_classes), np.arange(n_classes) % dimension] = scale
    features = centers[labels] + rng.normal(0.0, spread, size=(n_samples, dimension))
    return labels.astype(np.float64), features


class FakeDatasetSource:
    """Dataset source returning synthetic splits and recording requested limits."""

    def __init__(self, dataset):
        self.dataset = dataset
        self.requests = []

    def read_dataset(self, training_limit=None, test_limit=None):
        self.requests.append((training_limit, test_limit))
        return copy.deepcopy(self.dataset)


BASE_CONFIG = {
    'data': {
        'max_samples': None,
        'shuffle': True,
        'seed': 3,
        'normalization': 'none',
    },
    'solver': {
        'quiet': True,
        'parameters': {'kernel': 'rbf', 'C': 1.0, 'gamma': 0},
    },
    'cross_validation': {'folds': 5},
    'grid_search': {
        'folds': 3,
        'n_jobs': 1,
        'show_progress': False,
        'c': {'first': 1.0, 'last': 4.0, 'steps': 2},
        'gamma': {'first': 0.01, 'last': 0.1, 'steps': 2},
    },
    'persistence': {'fallback_to_training': True},
    'output': {'save_report': True, 'plot_grid': False},
}


@pytest.fixture
def blobs_dataset():
    train_labels, train_features = make_blobs(100, 10, seed=1)
    test_labels, test_features = make_blobs(30, 10, seed=2)
    return MnistDataset(
        training_images=train_features,
        training_labels=train_labels,
        test_images=test_features,
        test_labels=test_labels
    )


@pytest.fixture
def dataset_source(blobs_dataset):
    return FakeDatasetSource(blobs_dataset)


@pytest.fixture
def make_config(tmp_path):
    def _make(**sections):
        values = copy.deepcopy(BASE_CONFIG)
        values['persistence']['model_path'] = str(tmp_path / 'models' / 'svm.model')
        values['output']['dir'] = str(tmp_path / 'output')
        for section, overrides in sections.items():
            values.setdefault(section, {}).update(overrides)
        return Config(None, values=values)
    return _make


@pytest.fixture
def solver():
    return SVMSolver(quiet=True)


@pytest.fixture
def binary_problem():
    """Two clusters far apart, labels alternating."""
    labels, features = make_blobs(20, 2, dimension=2, spread=0.2, scale=5.0, seed=4)
    return build_problem(labels, features, shuffle=False)


@pytest.fixture
def ten_class_problem():
    labels, features = make_blobs(100, 10, seed=5)
    return build_problem(labels, features, shuffle=True, rng=np.random.default_rng(11))
