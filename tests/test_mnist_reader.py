import gzip
import struct

import numpy as np
import pytest

from svm_harness.data import MnistDataset, MnistReader, normalize_dataset
from svm_harness.data.mnist_reader import parse_idx


def idx_bytes(array, type_code=0x08):
    array = np.asarray(array)
    header = struct.pack('>BBBB', 0, 0, type_code, array.ndim)
    header += struct.pack('>' + 'I' * array.ndim, *array.shape)
    return header + array.astype('>u1').tobytes()


def write_split(directory, prefix, images, labels, compress=False):
    image_name = f"{prefix}-images-idx3-ubyte"
    label_name = f"{prefix}-labels-idx1-ubyte"
    for name, array in ((image_name, images), (label_name, labels)):
        data = idx_bytes(array)
        if compress:
            with gzip.open(directory / f"{name}.gz", 'wb') as f:
                f.write(data)
        else:
            (directory / name).write_bytes(data)


@pytest.fixture
def mnist_dir(tmp_path):
    rng = np.random.default_rng(0)
    write_split(tmp_path, 'train', rng.integers(0, 256, size=(12, 4, 4)), np.arange(12) % 10)
    write_split(tmp_path, 't10k', rng.integers(0, 256, size=(5, 4, 4)), np.arange(5), compress=True)
    return tmp_path


def test_reads_both_splits(mnist_dir):
    dataset = MnistReader(mnist_dir).read_dataset()

    assert dataset.training_images.shape == (12, 16)
    assert dataset.training_labels.tolist() == [float(i % 10) for i in range(12)]
    assert dataset.test_images.shape == (5, 16)
    assert dataset.training_images.dtype == np.float64
    assert not dataset.is_empty()


def test_limits_apply_per_split(mnist_dir):
    dataset = MnistReader(mnist_dir).read_dataset(training_limit=7, test_limit=2)
    assert dataset.num_train == 7
    assert dataset.num_test == 2


def test_missing_files_give_empty_dataset(tmp_path):
    dataset = MnistReader(tmp_path).read_dataset()
    assert dataset.is_empty()
    assert dataset.num_test == 0


def test_dotted_file_names_accepted(tmp_path):
    images = np.zeros((2, 3, 3))
    (tmp_path / 'train-images.idx3-ubyte').write_bytes(idx_bytes(images))
    (tmp_path / 'train-labels.idx1-ubyte').write_bytes(idx_bytes(np.array([1, 2])))

    dataset = MnistReader(tmp_path).read_dataset()
    assert dataset.num_train == 2


def test_bad_magic_number():
    with pytest.raises(ValueError):
        parse_idx(b'\x01\x00\x08\x01\x00\x00\x00\x01\x05')


def test_truncated_body():
    data = idx_bytes(np.arange(10))[:-3]
    with pytest.raises(ValueError):
        parse_idx(data)


def test_unexpected_dimension_count():
    with pytest.raises(ValueError):
        parse_idx(idx_bytes(np.arange(4)), expected_ndim=3)


def test_image_label_count_mismatch(tmp_path):
    (tmp_path / 'train-images-idx3-ubyte').write_bytes(idx_bytes(np.zeros((3, 2, 2))))
    (tmp_path / 'train-labels-idx1-ubyte').write_bytes(idx_bytes(np.array([1, 2])))
    with pytest.raises(ValueError):
        MnistReader(tmp_path).read_dataset()


def make_dataset():
    return MnistDataset(
        training_images=np.array([[0.0, 255.0], [51.0, 10.0]]),
        training_labels=np.array([0.0, 1.0]),
        test_images=np.array([[255.0, 0.0]]),
        test_labels=np.array([1.0])
    )


def test_unit_normalization():
    dataset = normalize_dataset(make_dataset(), 'unit')
    np.testing.assert_allclose(dataset.training_images, [[0.0, 1.0], [0.2, 10 / 255]])
    np.testing.assert_allclose(dataset.test_images, [[1.0, 0.0]])


def test_binarize_normalization():
    dataset = normalize_dataset(make_dataset(), 'binarize', threshold=30)
    np.testing.assert_array_equal(dataset.training_images, [[0.0, 1.0], [1.0, 0.0]])


def test_standard_normalization_fits_training_split():
    dataset = normalize_dataset(make_dataset(), 'standard')
    np.testing.assert_allclose(dataset.training_images.mean(axis=0), [0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(dataset.test_images, [[(255 - 25.5) / 25.5, (0 - 132.5) / 122.5]])


def test_unknown_normalization():
    with pytest.raises(ValueError):
        normalize_dataset(make_dataset(), 'zscore')


def test_none_leaves_values():
    dataset = normalize_dataset(make_dataset(), 'none')
    assert dataset.training_images[0, 1] == 255.0
