"""
Feature normalization applied to a dataset before problems are built.
"""

import logging

import numpy as np
from sklearn.preprocessing import StandardScaler

from .mnist_reader import MnistDataset

logger = logging.getLogger(__name__)

NORMALIZATION_METHODS = ('none', 'unit', 'binarize', 'standard')

PIXEL_MAX = 255.0


def normalize_dataset(dataset: MnistDataset, method: str = 'none', threshold: float = 30.0) -> MnistDataset:
    """
    Rescale the dataset's feature values in place.

    Args:
        dataset: Dataset whose image matrices are rescaled
        method: 'none', 'unit' (divide by 255), 'binarize' (1 above threshold,
            else 0) or 'standard' (zero mean, unit variance fitted on the
            training split)
        threshold: Pixel threshold used by 'binarize'

    Returns:
        The same dataset instance
    """
    if method not in NORMALIZATION_METHODS:
        raise ValueError(f"Unknown normalization method: {method}. Available: {NORMALIZATION_METHODS}")

    if method == 'none':
        return dataset

    logger.info(f"Normalizing dataset features ({method})")

    splits = [images for images in (dataset.training_images, dataset.test_images) if images.size]

    if method == 'unit':
        for images in splits:
            images /= PIXEL_MAX
    elif method == 'binarize':
        for images in splits:
            images[:] = (images > threshold).astype(np.float64)
    elif method == 'standard':
        scaler = StandardScaler()
        scaler.fit(dataset.training_images)
        for images in splits:
            images[:] = scaler.transform(images)

    return dataset
