"""
MNIST dataset reader.

Reads the four IDX files of the MNIST distribution (plain or gzip-compressed)
into flat float64 feature matrices and label vectors. Missing files produce
an empty split rather than an exception, so callers can tell "no data" apart
from a successful read.
"""

import gzip
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# IDX type code -> big-endian numpy dtype
IDX_DTYPES = {
    0x08: np.dtype('>u1'),
    0x09: np.dtype('>i1'),
    0x0B: np.dtype('>i2'),
    0x0C: np.dtype('>i4'),
    0x0D: np.dtype('>f4'),
    0x0E: np.dtype('>f8'),
}

TRAINING_IMAGES = 'train-images-idx3-ubyte'
TRAINING_LABELS = 'train-labels-idx1-ubyte'
TEST_IMAGES = 't10k-images-idx3-ubyte'
TEST_LABELS = 't10k-labels-idx1-ubyte'


def _empty_images() -> np.ndarray:
    return np.empty((0, 0), dtype=np.float64)


def _empty_labels() -> np.ndarray:
    return np.empty(0, dtype=np.float64)


@dataclass
class MnistDataset:
    """Training and test splits as flat feature matrices and label vectors."""
    training_images: np.ndarray = field(default_factory=_empty_images)
    training_labels: np.ndarray = field(default_factory=_empty_labels)
    test_images: np.ndarray = field(default_factory=_empty_images)
    test_labels: np.ndarray = field(default_factory=_empty_labels)

    def is_empty(self) -> bool:
        """True when there is no training data to work with."""
        return self.training_images.size == 0 or self.training_labels.size == 0

    @property
    def num_train(self) -> int:
        return len(self.training_labels)

    @property
    def num_test(self) -> int:
        return len(self.test_labels)


def parse_idx(data: bytes, expected_ndim: Optional[int] = None) -> np.ndarray:
    """
    Parse the contents of an IDX file.

    Args:
        data: Raw file contents
        expected_ndim: Reject files whose dimension count differs

    Returns:
        Array shaped as declared in the IDX header

    Raises:
        ValueError: On a bad magic number, unknown type code or truncated body
    """
    if len(data) < 4 or data[0] != 0 or data[1] != 0:
        raise ValueError("Not an IDX file: bad magic number")

    type_code, ndim = data[2], data[3]
    dtype = IDX_DTYPES.get(type_code)
    if dtype is None:
        raise ValueError(f"Unknown IDX type code: 0x{type_code:02X}")
    if expected_ndim is not None and ndim != expected_ndim:
        raise ValueError(f"Expected {expected_ndim}-dimensional IDX data, got {ndim}")

    header_size = 4 + 4 * ndim
    if len(data) < header_size:
        raise ValueError("Truncated IDX header")

    dims = tuple(int(d) for d in np.frombuffer(data, dtype='>u4', count=ndim, offset=4))
    count = int(np.prod(dims)) if dims else 0
    if len(data) - header_size < count * dtype.itemsize:
        raise ValueError(f"Truncated IDX body: expected {count} items of shape {dims}")

    return np.frombuffer(data, dtype=dtype, count=count, offset=header_size).reshape(dims)


class MnistReader:
    """
    Loads MNIST training and test splits from a directory.

    Accepts both the canonical file names (train-images-idx3-ubyte) and the
    dotted variants (train-images.idx3-ubyte), each optionally gzip-compressed.
    """

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def _find_file(self, name: str) -> Optional[Path]:
        dotted = name.replace('-idx', '.idx')
        for candidate in (name, f"{name}.gz", dotted, f"{dotted}.gz"):
            path = self.data_dir / candidate
            if path.exists():
                return path
        return None

    def _read_file(self, path: Path, expected_ndim: int) -> np.ndarray:
        opener = gzip.open if path.suffix == '.gz' else open
        with opener(path, 'rb') as f:
            data = f.read()
        return parse_idx(data, expected_ndim=expected_ndim)

    def read_split(self, images_name: str, labels_name: str,
                   limit: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Read one split as (images, labels).

        Images are flattened to rows*cols features. Returns empty arrays when
        either file is missing.
        """
        images_path = self._find_file(images_name)
        labels_path = self._find_file(labels_name)
        if images_path is None or labels_path is None:
            logger.warning(f"MNIST files {images_name}/{labels_name} not found in {self.data_dir}")
            return _empty_images(), _empty_labels()

        images = self._read_file(images_path, expected_ndim=3)
        labels = self._read_file(labels_path, expected_ndim=1)

        if len(images) != len(labels):
            raise ValueError(f"{images_path.name} has {len(images)} images but "
                             f"{labels_path.name} has {len(labels)} labels")

        if limit:
            images = images[:limit]
            labels = labels[:limit]

        # Flatten each image to one row-major feature vector
        images = images.reshape(len(images), -1).astype(np.float64)
        labels = labels.astype(np.float64)
        return images, labels

    def read_dataset(self, training_limit: Optional[int] = None,
                     test_limit: Optional[int] = None) -> MnistDataset:
        """
        Read both splits.

        Args:
            training_limit: Maximum number of training samples (None or 0 for all)
            test_limit: Maximum number of test samples (None or 0 for all)

        Returns:
            MnistDataset, empty when the training files are unavailable
        """
        logger.info(f"Reading MNIST dataset from {self.data_dir}")

        training_images, training_labels = self.read_split(TRAINING_IMAGES, TRAINING_LABELS, training_limit)
        test_images, test_labels = self.read_split(TEST_IMAGES, TEST_LABELS, test_limit)

        dataset = MnistDataset(
            training_images=training_images,
            training_labels=training_labels,
            test_images=test_images,
            test_labels=test_labels
        )

        logger.info(f"Read {dataset.num_train} training and {dataset.num_test} test samples")
        return dataset
