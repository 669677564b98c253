"""Coarse-to-fine image pyramids.

The number of levels is bounded by the image size: the coarsest level must
keep its smaller side at or above `MIN_COARSEST_SIZE` pixels.
"""

import logging
import math

import numpy as np
import scipy.ndimage

from ._typing_utils import FloatArray
from .interpolation import BicubicInterpolator

logger = logging.getLogger(__name__)

MIN_COARSEST_SIZE = 32


def max_num_scales(nx: int, ny: int, zfactor: float, limit: int = MIN_COARSEST_SIZE) -> int:
    """Largest number of levels whose coarsest one is still at least ``limit`` wide.

    Computes ``N = 1 + floor(log(D / limit) / log(1 / zfactor))`` with
    ``D = min(nx, ny)``, then nudges ``N`` so that rounding in the logarithms
    cannot break ``D * zfactor**(N-1) >= limit > D * zfactor**N``. Images
    smaller than ``limit`` get a single level.
    """
    if not 0 < zfactor < 1:
        raise ValueError(f"Zoom factor must be in (0, 1), got {zfactor}")
    size = min(nx, ny)
    if size < limit:
        return 1
    n = 1 + math.floor(math.log(size / limit) / math.log(1.0 / zfactor))
    while size * zfactor**n >= limit:
        n += 1
    while n > 1 and size * zfactor ** (n - 1) < limit:
        n -= 1
    return n


def effective_num_scales(nscales: int, nx: int, ny: int, zfactor: float) -> int:
    """Number of levels to use given what the caller asked for.

    A request of zero or less means "as many as the image allows"; a request
    above that limit is clamped to it.
    """
    limit = max_num_scales(nx, ny, zfactor)
    if nscales <= 0 or nscales > limit:
        if nscales > limit:
            logger.debug(f"Requested {nscales} scales, limited to {limit} by the image size")
        return limit
    return nscales


def zoom_size(nx: int, ny: int, zfactor: float) -> tuple[int, int]:
    return int(nx * zfactor + 0.5), int(ny * zfactor + 0.5)


def zoom_out(image: np.ndarray, zfactor: float) -> FloatArray:
    """Downsample an ``(ny, nx, nz)`` image by ``zfactor``.

    The image is smoothed with a Gaussian whose width grows with the
    reduction, then resampled bicubically on the coarser grid.
    """
    ny, nx, _ = image.shape
    nxz, nyz = zoom_size(nx, ny, zfactor)
    sigma = 0.6 * math.sqrt(1.0 / (zfactor * zfactor) - 1.0)
    smoothed = scipy.ndimage.gaussian_filter(image, sigma=(sigma, sigma, 0), mode="nearest")
    yz, xz = np.mgrid[0:nyz, 0:nxz]
    return BicubicInterpolator(smoothed).sample(xz / zfactor, yz / zfactor)


def build_pyramid(image: np.ndarray, nscales: int, zfactor: float) -> list[FloatArray]:
    """Levels of the pyramid, finest (the image itself) first."""
    levels = [np.asarray(image, dtype=np.float64)]
    for _ in range(1, nscales):
        levels.append(zoom_out(levels[-1], zfactor))
    return levels
