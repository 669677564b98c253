"""Robust error functions, expressed as per-pixel weights.

Each function ``rho`` is applied to the squared residual ``t2``; the
estimator weights every pixel by ``rho'(t2)``, which down-weights outliers
for every choice but the quadratic one.
"""

import enum

import numpy as np

from .._typing_utils import FloatArray

# Schedule of the scale parameter when it is not given by the caller.
LAMBDA_0 = 80.0
LAMBDA_N = 5.0
LAMBDA_RATIO = 0.90


class RobustFunction(enum.IntEnum):
    QUADRATIC = 0
    TRUNCATED_QUADRATIC = 1
    GEMAN_MCCLURE = 2
    LORENTZIAN = 3
    CHARBONNIER = 4


def robust_weights(t2: np.ndarray, robust: int, lambda_: float) -> FloatArray:
    """Derivative ``rho'(t2)`` of the selected robust function."""
    robust = RobustFunction(robust)
    l2 = lambda_ * lambda_
    if robust == RobustFunction.QUADRATIC:
        return np.ones_like(t2)
    if robust == RobustFunction.TRUNCATED_QUADRATIC:
        return np.where(t2 < l2, 1.0, 0.0)
    if robust == RobustFunction.GEMAN_MCCLURE:
        return l2 / (l2 + t2) ** 2
    if robust == RobustFunction.LORENTZIAN:
        return 1.0 / (l2 + t2)
    return 1.0 / np.sqrt(t2 + l2)


def lambda_schedule(lambda_: float):
    """Scale parameter to use at each iteration.

    A positive value is used as is. Otherwise the scale starts large and
    shrinks geometrically towards `LAMBDA_N`, so the first iterations behave
    like least squares and the later ones reject outliers.
    """
    if lambda_ > 0:
        while True:
            yield lambda_
    current = LAMBDA_0
    while True:
        yield current
        current = max(current * LAMBDA_RATIO, LAMBDA_N)
