from collections import Counter

import numpy as np
import pytest

from svm_harness.data import SENTINEL_INDEX, Problem, build_problem, encode_features
from svm_harness.errors import ShapeMismatch


def test_dense_encoding_is_one_based_and_sentinel_terminated():
    problem = build_problem([1, 2], [[0.5, 0.0, 2.0], [1.0, 1.0, 1.0]], shuffle=False)

    record = problem.nodes[0]
    assert list(record['index']) == [1, 2, 3, SENTINEL_INDEX]
    assert list(record['value'][:-1]) == [0.5, 0.0, 2.0]
    assert problem.dimension == 3


def test_sparse_encoding_omits_zeros_and_decodes_back():
    features = [[0.0, 3.0, 0.0, 4.0], [0.0, 0.0, 0.0, 0.0]]
    problem = build_problem([0, 1], features, shuffle=False, sparse=True)

    assert list(problem.nodes[0]['index']) == [2, 4, SENTINEL_INDEX]
    assert list(problem.nodes[1]['index']) == [SENTINEL_INDEX]
    np.testing.assert_array_equal(problem.dense, np.array(features))


def test_indices_strictly_increasing():
    record = encode_features(np.array([1.0, 0.0, 2.0, 0.0, 3.0]), sparse=True)
    indices = record['index'][:-1]
    assert np.all(np.diff(indices) > 0)


def test_no_shuffle_keeps_order():
    labels = np.arange(6, dtype=float)
    features = np.arange(12, dtype=float).reshape(6, 2)
    problem = build_problem(labels, features, shuffle=False)

    np.testing.assert_array_equal(problem.labels, labels)
    np.testing.assert_array_equal(problem.dense, features)


def test_shuffle_preserves_label_feature_pairs():
    labels = np.arange(50, dtype=float) % 7
    features = np.random.default_rng(0).normal(size=(50, 4))
    problem = build_problem(labels, features, shuffle=True, rng=np.random.default_rng(1))

    original = Counter((l, tuple(f)) for l, f in zip(labels, features))
    shuffled = Counter((l, tuple(f)) for l, f in zip(problem.labels, problem.dense))
    assert original == shuffled


def test_shuffle_is_synchronized():
    labels = np.arange(30, dtype=float)
    features = np.column_stack([labels * 10, labels * 100])
    problem = build_problem(labels, features, shuffle=True, rng=np.random.default_rng(2))

    assert not np.array_equal(problem.labels, labels)
    np.testing.assert_array_equal(problem.dense[:, 0], problem.labels * 10)
    np.testing.assert_array_equal(problem.dense[:, 1], problem.labels * 100)


def test_max_samples_takes_first_positions_after_shuffle():
    labels = np.arange(10, dtype=float)
    features = labels.reshape(-1, 1) * np.ones((1, 3))

    problem = build_problem(labels, features, max_samples=5, shuffle=True, rng=np.random.default_rng(7))

    expected = np.random.default_rng(7).permutation(10)[:5].astype(float)
    assert problem.n_samples == 5
    assert len(problem.nodes) == 5
    np.testing.assert_array_equal(problem.labels, expected)
    np.testing.assert_array_equal(problem.dense[:, 0], expected)


def test_max_samples_larger_than_dataset_uses_everything():
    problem = build_problem([1, 2, 3], [[1.0], [2.0], [3.0]], max_samples=100, shuffle=False)
    assert problem.n_samples == 3


def test_negative_max_samples_rejected():
    with pytest.raises(ValueError):
        build_problem([1], [[1.0]], max_samples=-1)


def test_label_feature_count_mismatch():
    with pytest.raises(ShapeMismatch):
        build_problem([1, 2, 3], [[1.0], [2.0]])


def test_ragged_features_rejected():
    with pytest.raises(ShapeMismatch):
        build_problem([1, 2], [[1.0, 2.0], [3.0]])


def test_empty_input_builds_empty_problem():
    problem = build_problem([], [], shuffle=True)
    assert problem.n_samples == 0
    assert problem.dense.shape == (0, 0)


def test_problem_constructor_enforces_length_invariant():
    record = encode_features(np.array([1.0]))
    with pytest.raises(ShapeMismatch):
        Problem(labels=np.array([1.0, 2.0]), nodes=(record,), dimension=1)


def test_problem_constructor_requires_sentinel():
    record = encode_features(np.array([1.0, 2.0]))[:-1]
    with pytest.raises(ShapeMismatch):
        Problem(labels=np.array([1.0]), nodes=(record,), dimension=2)


def test_problem_is_read_only():
    problem = build_problem([1, 2], [[1.0], [2.0]], shuffle=False)
    with pytest.raises(ValueError):
        problem.labels[0] = 5.0
    with pytest.raises(ValueError):
        problem.dense[0, 0] = 5.0
    with pytest.raises(ValueError):
        problem.nodes[0]['value'][0] = 5.0
