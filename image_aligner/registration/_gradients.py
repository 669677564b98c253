"""Spatial gradients of the reference image, selectable by kernel.

All derivative kernels are scaled to unit gain on a linear ramp, so every
selector estimates the same quantity and only differs in its noise
sensitivity and smoothing.
"""

import enum
import math

import numpy as np
import scipy.ndimage

from .._typing_utils import FloatArray


class GradientType(enum.IntEnum):
    CENTRAL_DIFFERENCES = 0
    HYPOMODE = 1
    FARID_3 = 2
    FARID_5 = 3
    GAUSSIAN_SIGMA_3 = 4
    GAUSSIAN_SIGMA_6 = 5


def _normalized(smoothing: np.ndarray) -> np.ndarray:
    return smoothing / smoothing.sum()


def _unit_gain(derivative: np.ndarray) -> np.ndarray:
    offsets = np.arange(len(derivative)) - (len(derivative) - 1) / 2
    return derivative / np.sum(derivative * offsets)


def _gaussian_kernels(sigma: float) -> tuple[np.ndarray, np.ndarray]:
    radius = max(1, math.ceil(3 * sigma))
    t = np.arange(-radius, radius + 1, dtype=np.float64)
    smoothing = _normalized(np.exp(-t * t / (2 * sigma * sigma)))
    return smoothing, _unit_gain(t * smoothing)


# Farid & Simoncelli derivative filters (prefilter, derivative).
_KERNELS = {
    GradientType.FARID_3: (
        _normalized(np.array([0.229879, 0.540242, 0.229879])),
        _unit_gain(np.array([-0.425287, 0.0, 0.425287])),
    ),
    GradientType.FARID_5: (
        _normalized(np.array([0.037659, 0.249153, 0.426375, 0.249153, 0.037659])),
        _unit_gain(np.array([-0.109604, -0.276691, 0.0, 0.276691, 0.109604])),
    ),
    GradientType.GAUSSIAN_SIGMA_3: _gaussian_kernels(0.3),
    GradientType.GAUSSIAN_SIGMA_6: _gaussian_kernels(0.6),
}


def _separable(
    image: np.ndarray, prefilter: np.ndarray, derivative: np.ndarray
) -> tuple[FloatArray, FloatArray]:
    gx = scipy.ndimage.correlate1d(image, derivative, axis=1, mode="nearest")
    gx = scipy.ndimage.correlate1d(gx, prefilter, axis=0, mode="nearest")
    gy = scipy.ndimage.correlate1d(image, derivative, axis=0, mode="nearest")
    gy = scipy.ndimage.correlate1d(gy, prefilter, axis=1, mode="nearest")
    return gx, gy


def image_gradient(image: np.ndarray, gradient_type: int) -> tuple[FloatArray, FloatArray]:
    """Gradients ``(dI/dx, dI/dy)`` of an ``(ny, nx, nz)`` image, per channel."""
    gradient_type = GradientType(gradient_type)
    image = np.asarray(image, dtype=np.float64)

    if gradient_type == GradientType.CENTRAL_DIFFERENCES:
        kernel = np.array([-0.5, 0.0, 0.5])
        return (
            scipy.ndimage.correlate1d(image, kernel, axis=1, mode="nearest"),
            scipy.ndimage.correlate1d(image, kernel, axis=0, mode="nearest"),
        )
    if gradient_type == GradientType.HYPOMODE:
        # Differences averaged over each 2x2 cell.
        kx = np.array([[-0.5, 0.5], [-0.5, 0.5]])[:, :, np.newaxis]
        return (
            scipy.ndimage.correlate(image, kx, mode="nearest"),
            scipy.ndimage.correlate(image, kx.transpose(1, 0, 2), mode="nearest"),
        )
    return _separable(image, *_KERNELS[gradient_type])
