"""Data package initialization."""

from .mnist_reader import MnistDataset, MnistReader
from .normalizer import normalize_dataset
from .problem_builder import Problem, build_problem, encode_features, SENTINEL_INDEX

__all__ = [
    'MnistDataset',
    'MnistReader',
    'normalize_dataset',
    'Problem',
    'build_problem',
    'encode_features',
    'SENTINEL_INDEX',
]
