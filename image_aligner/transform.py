"""Parametric motion models.

A transform is stored as a parameter vector whose length ``nparams`` selects
the model (see `TransformType`). Every model also has an equivalent 3x3
homogeneous matrix mapping a pixel ``(x, y)`` of the first image onto the
second image. The estimator works on parameter vectors; matrices are used for
composition, rescaling between pyramid levels and output.

Parameter layouts:
- translation: ``(tx, ty)``
- Euclidean: ``(tx, ty, theta)``
- similarity: ``(tx, ty, a, b)``
- affinity: ``(tx, ty, a00, a01, a10, a11)``
- homography: ``(h00, h01, h02, h10, h11, h12, h20, h21)``
"""

import enum
import logging
import math
from typing import Any

import numpy as np
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._typing_utils import FloatArray, NumArray

logger = logging.getLogger(__name__)


class TransformType(enum.IntEnum):
    """Supported motion models, valued by their number of parameters."""

    TRANSLATION = 2
    EUCLIDEAN = 3
    SIMILARITY = 4
    AFFINITY = 6
    HOMOGRAPHY = 8

    @property
    def nparams(self) -> int:
        return int(self.value)


VALID_NPARAMS = frozenset(t.nparams for t in TransformType)

# Parameter indices that each model adds over the next smaller one.
_SEED_GROUPS: dict[int, tuple[int, ...]] = {
    2: (0, 1),
    3: (2,),
    4: (3,),
    6: (4, 5),
    8: (6, 7),
}


class TransformSeeds(BaseSettings):
    """Initial values of the transform parameters.

    Each seed is read from the environment variable of the same name, so
    ``P0=3.5 image-aligner a.png b.png --nparams 2`` starts the estimation from a
    horizontal shift of 3.5 pixels.
    Values that are not numbers count as 0.
    """

    model_config = SettingsConfigDict(case_sensitive=True)

    P0: float = 0.0
    P1: float = 0.0
    P2: float = 0.0
    P3: float = 0.0
    P4: float = 0.0
    P5: float = 0.0
    P6: float = 0.0
    P7: float = 0.0

    @field_validator("P0", "P1", "P2", "P3", "P4", "P5", "P6", "P7", mode="before")
    @classmethod
    def _numeric_or_zero(cls, v: Any) -> Any:
        try:
            return float(v)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric transform seed {v!r}")
            return 0.0

    def as_tuple(self) -> tuple[float, ...]:
        return (self.P0, self.P1, self.P2, self.P3, self.P4, self.P5, self.P6, self.P7)


def check_nparams(nparams: int) -> int:
    if nparams not in VALID_NPARAMS:
        raise ValueError(
            f"Unsupported number of transform parameters: {nparams} "
            f"(expected one of {sorted(VALID_NPARAMS)})"
        )
    return nparams


def initial_parameters(nparams: int, seeds: TransformSeeds | None = None) -> FloatArray:
    """Allocate a parameter vector and fill it from the seeds.

    Seeds are assigned positionally, one model increment at a time, up to
    ``nparams``.
    """
    check_nparams(nparams)
    if seeds is None:
        seeds = TransformSeeds()
    values = seeds.as_tuple()
    p = np.zeros(nparams, dtype=np.float64)
    for size, indices in _SEED_GROUPS.items():
        if size > nparams:
            break
        for i in indices:
            p[i] = values[i]
    return p


def params_to_matrix(p: NumArray, nparams: int) -> FloatArray:
    """Build the 3x3 homogeneous matrix of a parameter vector."""
    check_nparams(nparams)
    p = np.asarray(p, dtype=np.float64)
    m = np.eye(3, dtype=np.float64)
    if nparams == TransformType.TRANSLATION:
        m[0, 2], m[1, 2] = p[0], p[1]
    elif nparams == TransformType.EUCLIDEAN:
        c, s = math.cos(p[2]), math.sin(p[2])
        m[0] = (c, -s, p[0])
        m[1] = (s, c, p[1])
    elif nparams == TransformType.SIMILARITY:
        m[0] = (1 + p[2], -p[3], p[0])
        m[1] = (p[3], 1 + p[2], p[1])
    elif nparams == TransformType.AFFINITY:
        m[0] = (1 + p[2], p[3], p[0])
        m[1] = (p[4], 1 + p[5], p[1])
    else:
        m[0] = (1 + p[0], p[1], p[2])
        m[1] = (p[3], 1 + p[4], p[5])
        m[2] = (p[6], p[7], 1.0)
    return m


def matrix_to_params(m: NumArray, nparams: int) -> FloatArray:
    """Extract the parameter vector of a matrix belonging to the given model."""
    check_nparams(nparams)
    m = np.asarray(m, dtype=np.float64)
    if nparams == TransformType.TRANSLATION:
        p = [m[0, 2], m[1, 2]]
    elif nparams == TransformType.EUCLIDEAN:
        p = [m[0, 2], m[1, 2], math.atan2(m[1, 0], m[0, 0])]
    elif nparams == TransformType.SIMILARITY:
        p = [m[0, 2], m[1, 2], m[0, 0] - 1, m[1, 0]]
    elif nparams == TransformType.AFFINITY:
        p = [m[0, 2], m[1, 2], m[0, 0] - 1, m[0, 1], m[1, 0], m[1, 1] - 1]
    else:
        m = m / m[2, 2]
        p = [
            m[0, 0] - 1, m[0, 1], m[0, 2],
            m[1, 0], m[1, 1] - 1, m[1, 2],
            m[2, 0], m[2, 1],
        ]
    return np.asarray(p, dtype=np.float64)


def apply_matrix(m: NumArray, x: NumArray, y: NumArray) -> tuple[FloatArray, FloatArray]:
    """Map pixel coordinates through a homogeneous matrix."""
    d = m[2, 0] * x + m[2, 1] * y + m[2, 2]
    xp = (m[0, 0] * x + m[0, 1] * y + m[0, 2]) / d
    yp = (m[1, 0] * x + m[1, 1] * y + m[1, 2]) / d
    return xp, yp


def jacobian(nparams: int, x: NumArray, y: NumArray) -> FloatArray:
    """Jacobian of the warp with respect to its parameters, at the identity.

    Returns an array of shape ``(n_points, 2, nparams)``; row 0 holds the
    derivatives of the warped x coordinate, row 1 those of y.
    """
    check_nparams(nparams)
    x = np.ravel(np.asarray(x, dtype=np.float64))
    y = np.ravel(np.asarray(y, dtype=np.float64))
    one, zero = np.ones_like(x), np.zeros_like(x)
    if nparams == TransformType.TRANSLATION:
        jx = [one, zero]
        jy = [zero, one]
    elif nparams == TransformType.EUCLIDEAN:
        jx = [one, zero, -y]
        jy = [zero, one, x]
    elif nparams == TransformType.SIMILARITY:
        jx = [one, zero, x, -y]
        jy = [zero, one, y, x]
    elif nparams == TransformType.AFFINITY:
        jx = [one, zero, x, y, zero, zero]
        jy = [zero, one, zero, zero, x, y]
    else:
        jx = [x, y, one, zero, zero, zero, -x * x, -x * y]
        jy = [zero, zero, zero, x, y, one, -x * y, -y * y]
    return np.stack([np.stack(jx, axis=-1), np.stack(jy, axis=-1)], axis=1)


def compose_inverse(p: NumArray, dp: NumArray, nparams: int) -> FloatArray:
    """Inverse compositional update: the parameters of ``W(p) o W(dp)^-1``."""
    m = params_to_matrix(p, nparams) @ np.linalg.inv(params_to_matrix(dp, nparams))
    return matrix_to_params(m, nparams)


def zoom_parameters(p: NumArray, nparams: int, factor: float) -> FloatArray:
    """Express a transform in a grid rescaled by ``factor``.

    A factor below one moves the transform to a coarser pyramid level; its
    reciprocal moves it back.
    """
    s = np.diag([factor, factor, 1.0])
    s_inv = np.diag([1.0 / factor, 1.0 / factor, 1.0])
    return matrix_to_params(s @ params_to_matrix(p, nparams) @ s_inv, nparams)
