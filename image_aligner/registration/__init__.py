"""Transform estimation for image alignment.

The aligner only relies on the `TransformEstimator` protocol; the default
implementation is a pyramidal, robust inverse-compositional estimator.
"""

from ._estimator import SolverConfig, TransformEstimator
from ._gradients import GradientType, image_gradient
from ._inverse_compositional import InverseCompositionalEstimator
from ._robust import RobustFunction, robust_weights

__all__ = [
    'SolverConfig',
    'TransformEstimator',
    'InverseCompositionalEstimator',
    'GradientType',
    'image_gradient',
    'RobustFunction',
    'robust_weights',
]
