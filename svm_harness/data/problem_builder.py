"""
Problem construction for the SVM solver.

Converts parallel label / feature-vector collections into a Problem: the
labels plus one sparse (index, value) record per sample, each terminated by
a sentinel node. Handles the synchronized shuffle and truncation to a
maximum sample count.
"""

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Sequence, Tuple

import numpy as np

from ..errors import ShapeMismatch

logger = logging.getLogger(__name__)

# One solver node: 1-based feature index and its value
NODE_DTYPE = np.dtype([('index', np.int32), ('value', np.float64)])

# Index marking the end of a sample's node list
SENTINEL_INDEX = -1


@dataclass(frozen=True, eq=False)
class Problem:
    """
    Labeled samples bundled for the solver.

    Attributes:
        labels: Class identifier per sample
        nodes: Sentinel-terminated node records, one per sample
        dimension: Number of features per sample
    """
    labels: np.ndarray
    nodes: Tuple[np.ndarray, ...]
    dimension: int

    def __post_init__(self):
        if len(self.labels) != len(self.nodes):
            raise ShapeMismatch(
                f"Problem has {len(self.labels)} labels but {len(self.nodes)} feature records"
            )
        for position, record in enumerate(self.nodes):
            if len(record) == 0 or record['index'][-1] != SENTINEL_INDEX:
                raise ShapeMismatch(f"Feature record {position} is not sentinel-terminated")
        self.labels.flags.writeable = False

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def n_samples(self) -> int:
        return len(self.labels)

    @cached_property
    def dense(self) -> np.ndarray:
        """Dense (n_samples, dimension) matrix decoded from the node records."""
        matrix = decode_records(self.nodes, self.dimension)
        matrix.flags.writeable = False
        return matrix


def encode_features(vector: np.ndarray, sparse: bool = False) -> np.ndarray:
    """
    Encode one feature vector as a sentinel-terminated node record.

    Position i (0-based) becomes index i+1. With sparse=True, exact zeros
    are left out.
    """
    vector = np.asarray(vector, dtype=np.float64)
    positions = np.flatnonzero(vector) if sparse else np.arange(vector.size)

    record = np.empty(positions.size + 1, dtype=NODE_DTYPE)
    record['index'][:-1] = positions + 1
    record['value'][:-1] = vector[positions]
    record[-1] = (SENTINEL_INDEX, 0.0)
    record.flags.writeable = False
    return record


def decode_record(record: np.ndarray, dimension: int) -> np.ndarray:
    """Decode a single node record back to a dense vector."""
    vector = np.zeros(dimension, dtype=np.float64)
    entries = record[record['index'] != SENTINEL_INDEX]
    vector[entries['index'] - 1] = entries['value']
    return vector


def decode_records(records: Sequence[np.ndarray], dimension: int) -> np.ndarray:
    """Decode node records to a dense (n, dimension) matrix."""
    matrix = np.zeros((len(records), dimension), dtype=np.float64)
    for row, record in enumerate(records):
        entries = record[:-1]
        matrix[row, entries['index'] - 1] = entries['value']
    return matrix


def _as_feature_matrix(features) -> np.ndarray:
    try:
        matrix = np.asarray(features, dtype=np.float64)
    except ValueError as e:
        raise ShapeMismatch(f"Feature vectors do not share a dimensionality: {e}") from e

    if matrix.ndim == 1 and matrix.size == 0:
        return matrix.reshape(0, 0)
    if matrix.ndim != 2:
        raise ShapeMismatch(f"Expected a 2-D feature collection, got shape {matrix.shape}")
    return matrix


def build_problem(labels: Sequence[float],
                  features: Sequence[Sequence[float]],
                  max_samples: Optional[int] = None,
                  shuffle: bool = True,
                  rng: Optional[np.random.Generator] = None,
                  sparse: bool = False) -> Problem:
    """
    Build a solver Problem from parallel label and feature collections.

    Args:
        labels: One class identifier per sample
        features: One feature vector per sample, all of the same length
        max_samples: Keep only the first max_samples samples (after shuffling);
            None keeps everything
        shuffle: Permute labels and features with the same random permutation
        rng: Random source for the shuffle (a fresh generator when omitted)
        sparse: Omit exact-zero features from the node records

    Returns:
        The constructed Problem

    Raises:
        ShapeMismatch: If label and feature counts differ or vectors are ragged
    """
    labels = np.asarray(labels, dtype=np.float64).reshape(-1)
    matrix = _as_feature_matrix(features)

    if len(labels) != len(matrix):
        raise ShapeMismatch(f"Got {len(labels)} labels for {len(matrix)} feature vectors")
    if max_samples is not None and max_samples < 0:
        raise ValueError(f"max_samples must be non-negative, got {max_samples}")

    # One permutation for labels and features keeps every pair together
    if shuffle:
        rng = rng if rng is not None else np.random.default_rng()
        order = rng.permutation(len(labels))
        labels = labels[order]
        matrix = matrix[order]

    # Truncate after shuffling so the kept subset is random
    if max_samples is not None and max_samples < len(labels):
        labels = labels[:max_samples]
        matrix = matrix[:max_samples]

    n_samples = len(labels)
    nodes = tuple(encode_features(vector, sparse=sparse) for vector in matrix)

    logger.debug(f"Built problem: {n_samples} samples, {matrix.shape[1]} features, "
                 f"shuffle={shuffle}, sparse={sparse}")

    return Problem(labels=labels.copy(), nodes=nodes, dimension=int(matrix.shape[1]))
