"""Image Aligner Package.

This package estimates the parametric transform (translation, Euclidean,
similarity, affinity or homography) that aligns a second image onto a first
one, and saves it as a parameter vector, a 3x3 matrix or a warped image.

Main functionality:
- Image loading: image pairs with optional masks, geometry validation
- Coarse-to-fine estimation: pyramid depth policy and a robust
  inverse-compositional estimator behind a pluggable interface
- Output: parameter files, matrix files and warped images

The package exposes the pipeline and its building blocks at the top level for convenience.
"""

from .aligner import Aligner, AlignmentResult
from .grayscale import reduce_image_set, rgb_to_gray
from .image_loaders import (
    GeometryMismatchError,
    ImageGeometry,
    ImageSet,
    LoadError,
    load_image_set,
    split_image_reference,
)
from .output import OutputMode, read_matrix, read_parameters, write_output
from .parameters import AlignmentParameters
from .pyramid import effective_num_scales, max_num_scales
from .registration import InverseCompositionalEstimator, SolverConfig, TransformEstimator
from .transform import (
    TransformSeeds,
    TransformType,
    initial_parameters,
    matrix_to_params,
    params_to_matrix,
)

__all__ = [
    'Aligner',
    'AlignmentResult',
    'AlignmentParameters',
    'rgb_to_gray',
    'reduce_image_set',
    'GeometryMismatchError',
    'ImageGeometry',
    'ImageSet',
    'LoadError',
    'load_image_set',
    'split_image_reference',
    'OutputMode',
    'read_matrix',
    'read_parameters',
    'write_output',
    'effective_num_scales',
    'max_num_scales',
    'InverseCompositionalEstimator',
    'SolverConfig',
    'TransformEstimator',
    'TransformSeeds',
    'TransformType',
    'initial_parameters',
    'matrix_to_params',
    'params_to_matrix',
]
