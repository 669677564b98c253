"""The contract between the aligner and a transform estimator."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .._typing_utils import FloatArray, NumArray
from ..image_loaders import ImageSet


@dataclass(frozen=True)
class SolverConfig:
    """Everything an estimator needs besides the images and the initial transform."""

    nscales: int
    """Number of pyramid levels, already limited by the image size."""
    zfactor: float
    """Zoom factor between consecutive pyramid levels, in (0, 1)."""
    tol: float
    """Convergence threshold on the norm of the parameter update."""
    robust: int
    """Robust error function selector (0-4)."""
    robust_lambda: float
    """Scale of the robust function; zero or less selects it automatically."""
    first_scale: int = 0
    """Finest pyramid level that is estimated."""
    nan_if_outside: bool = True
    """Discard pixels that the transform maps outside the second image."""
    delta: int = 5
    """Distance to the border under which warped pixels count as outside."""
    gradient_type: int = 3
    """Gradient kernel selector (0-5)."""
    laplacian: bool = False
    """Filter every pyramid level with a Laplacian before estimating."""
    verbose: bool = False


@runtime_checkable
class TransformEstimator(Protocol):
    """Refines a parametric transform aligning ``images.image2`` onto ``images.image1``."""

    def estimate_transform(
        self, images: ImageSet, params: NumArray, config: SolverConfig
    ) -> FloatArray:
        """Return the refined parameters, a vector of the same length as ``params``.

        ``images`` holds single or multi-channel buffers of identical geometry;
        masks, when present, have the channel count of the images.
        """
        ...
