"""Loading of the image pair (and optional masks) to be aligned.

An image reference is either ``path`` or ``path:maskpath``; only the first
colon separates the image from its mask.

DESIGN PRINCIPLE: Standardized Axes
------------------------------------
Every loaded buffer is a float64 array shaped ``(ny, nx, nz)`` with the
channels last, whatever the file format. Grayscale files get a trailing axis
of length one, and an alpha channel is dropped. Downstream code never has to
special-case 2-D arrays.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Optional

import numpy as np
import skimage.io
import tifffile

from ._typing_utils import FloatArray

logger = logging.getLogger(__name__)

TIFF_SUFFIXES = (".tif", ".tiff")


class LoadError(Exception):
    """An image or mask could not be decoded or does not fit its partner."""


class GeometryMismatchError(LoadError):
    """The two images to align differ in width, height or channel count."""


class ImageGeometry(NamedTuple):
    nx: int
    ny: int
    nz: int


@dataclass(frozen=True)
class ImageSet:
    """The two images to align and their optional masks.

    All buffers share the geometry of ``image1``.
    """

    image1: FloatArray
    image2: FloatArray
    mask1: Optional[FloatArray] = None
    mask2: Optional[FloatArray] = None

    @property
    def geometry(self) -> ImageGeometry:
        return geometry_of(self.image1)

    @property
    def has_masks(self) -> bool:
        return self.mask1 is not None or self.mask2 is not None


def geometry_of(image: np.ndarray) -> ImageGeometry:
    ny, nx, nz = image.shape
    return ImageGeometry(nx, ny, nz)


def split_image_reference(reference: str) -> tuple[str, Optional[str]]:
    """Split ``path:maskpath`` into its image path and mask path.

    Returns ``(reference, None)`` when no mask is given.
    """
    path, sep, mask_path = reference.partition(":")
    if not sep:
        return reference, None
    return path, mask_path


def _standardize_axes(data: np.ndarray, filepath: Path) -> FloatArray:
    if data.ndim == 2:
        data = data[:, :, np.newaxis]
    if data.ndim != 3:
        raise LoadError(f"Unsupported image shape {data.shape} in {filepath}")
    nz = data.shape[2]
    if nz == 2:
        # gray + alpha
        data = data[:, :, :1]
    elif nz == 4:
        data = data[:, :, :3]
    elif nz not in (1, 3):
        raise LoadError(f"Unsupported number of channels ({nz}) in {filepath}")
    return np.ascontiguousarray(data, dtype=np.float64)


def read_image(filepath: str | Path) -> FloatArray:
    """Decode an image file into a float64 ``(ny, nx, nz)`` array.

    TIFF files are read with tifffile so that floating point data survives;
    everything else goes through scikit-image.

    Raises:
        LoadError: if the file is missing, cannot be decoded, or has an
            unsupported shape.
    """
    filepath = Path(filepath)
    try:
        if filepath.suffix.lower() in TIFF_SUFFIXES:
            data = tifffile.imread(filepath)
        else:
            data = skimage.io.imread(filepath)
    except Exception as e:
        raise LoadError(f"Cannot read image {filepath}: {e}") from e
    return _standardize_axes(np.asarray(data), filepath)


def _read_mask(mask_path: str, image: FloatArray, label: str) -> FloatArray:
    mask = read_image(mask_path)
    if geometry_of(mask) != geometry_of(image):
        raise LoadError(
            f"Mask {mask_path} has geometry {geometry_of(mask)}, "
            f"expected {geometry_of(image)} to match {label}"
        )
    logger.info(f"use mask for {label}")
    return mask


def load_image_set(reference1: str, reference2: str) -> ImageSet:
    """Load both images and, when referenced, their masks.

    Raises:
        LoadError: an image or mask cannot be decoded, or a mask does not have
            the geometry of its image.
        GeometryMismatchError: the two images differ in geometry.
    """
    path1, mask_path1 = split_image_reference(reference1)
    path2, mask_path2 = split_image_reference(reference2)

    image1 = read_image(path1)
    image2 = read_image(path2)
    mask1 = _read_mask(mask_path1, image1, "image1") if mask_path1 else None
    mask2 = _read_mask(mask_path2, image2, "image2") if mask_path2 else None

    if geometry_of(image1) != geometry_of(image2):
        raise GeometryMismatchError(
            f"Image sizes differ: {path1} is {geometry_of(image1)}, "
            f"{path2} is {geometry_of(image2)}"
        )
    logger.debug(f"Loaded images with geometry {geometry_of(image1)}")
    return ImageSet(image1=image1, image2=image2, mask1=mask1, mask2=mask2)
