"""Bicubic resampling of images at arbitrary (non-integer) positions."""

import numpy as np
import scipy.ndimage

from ._typing_utils import BoolArray, FloatArray, NumArray
from .transform import apply_matrix, params_to_matrix

SPLINE_ORDER = 3
BOUNDARY_MODE = "nearest"
# Slack so that round-off on an exact border position does not count as outside.
BORDER_TOLERANCE = 1e-6


class BicubicInterpolator:
    """Cubic spline interpolation of an ``(ny, nx, nz)`` image.

    The spline coefficients are computed once, so repeated sampling of the
    same image (as done by the iterative estimator) only pays for the lookup.
    Positions outside the image are extended with the border values.
    """

    def __init__(self, image: np.ndarray):
        self.shape = image.shape
        self._coefficients = [
            scipy.ndimage.spline_filter(
                image[:, :, c], order=SPLINE_ORDER, mode=BOUNDARY_MODE
            )
            for c in range(image.shape[2])
        ]

    def sample(self, x: NumArray, y: NumArray) -> FloatArray:
        """Sample at positions ``(x, y)``; returns ``x.shape + (nz,)``."""
        coords = np.stack([np.asarray(y, dtype=np.float64), np.asarray(x, dtype=np.float64)])
        channels = [
            scipy.ndimage.map_coordinates(
                coeffs,
                coords,
                order=SPLINE_ORDER,
                mode=BOUNDARY_MODE,
                prefilter=False,
            )
            for coeffs in self._coefficients
        ]
        return np.stack(channels, axis=-1)

    def outside(self, x: NumArray, y: NumArray, delta: int = 0) -> BoolArray:
        """Positions farther out than ``delta`` pixels inside the border."""
        ny, nx = self.shape[:2]
        lo = delta - BORDER_TOLERANCE
        return (
            (x < lo)
            | (x > nx - 1 - lo)
            | (y < lo)
            | (y > ny - 1 - lo)
        )


def pixel_grid(nx: int, ny: int) -> tuple[FloatArray, FloatArray]:
    """Pixel coordinates ``(x, y)`` of an image, each shaped ``(ny, nx)``."""
    y, x = np.mgrid[0:ny, 0:nx]
    return x.astype(np.float64), y.astype(np.float64)


def warp_image(
    image: np.ndarray,
    params: NumArray,
    nparams: int,
    nan_if_outside: bool = True,
    delta: int = 0,
) -> FloatArray:
    """Backward warping of ``image`` by a parametric transform.

    Every output pixel ``x`` takes the value of ``image`` at ``W(x; params)``,
    so the result lies in the geometry of the reference image. Output pixels
    that map outside ``image`` are NaN when ``nan_if_outside`` is set.
    """
    ny, nx, _ = image.shape
    x, y = pixel_grid(nx, ny)
    xp, yp = apply_matrix(params_to_matrix(params, nparams), x, y)
    interpolator = BicubicInterpolator(image)
    warped = interpolator.sample(xp, yp)
    if nan_if_outside:
        warped[interpolator.outside(xp, yp, delta)] = np.nan
    return warped
