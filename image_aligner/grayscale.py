"""Reduction of color buffers to a single luminance channel."""

import numpy as np

from ._typing_utils import FloatArray
from .image_loaders import ImageSet


def rgb_to_gray(image: np.ndarray) -> FloatArray:
    """Average the three channels of an ``(ny, nx, 3)`` image.

    The channels are weighted equally (1/3 each), not with perceptual luma
    weights, since the estimation results depend on this exact reduction.
    Single channel images are returned as a copy.
    """
    if image.shape[2] == 3:
        return (image[:, :, 0:1] + image[:, :, 1:2] + image[:, :, 2:3]) / 3.0
    return np.array(image, dtype=np.float64, copy=True)


def reduce_image_set(images: ImageSet) -> ImageSet:
    """Reduce both images and any masks to one channel, all together."""
    return ImageSet(
        image1=rgb_to_gray(images.image1),
        image2=rgb_to_gray(images.image2),
        mask1=None if images.mask1 is None else rgb_to_gray(images.mask1),
        mask2=None if images.mask2 is None else rgb_to_gray(images.mask2),
    )
