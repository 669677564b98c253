"""Pyramidal, robust inverse-compositional estimation of parametric transforms.

At every pyramid level the warp ``W(x; p)`` is refined by Gauss-Newton steps
computed in the frame of the first image, so that the image gradients and
the warp Jacobian are evaluated once per level:

    e(x)  = I2(W(x; p)) - I1(x)
    dp    = H^-1 sum_x w(x) SD(x)^T e(x),   SD = grad I1 . dW/dp
    p    <- p o dp^-1

The weights ``w`` combine the robust error function, the masks and the
pixels discarded near or beyond the border of the second image.
"""

import logging

import numpy as np
import scipy.ndimage
from tqdm import tqdm

from .._typing_utils import BoolArray, FloatArray, NumArray
from ..image_loaders import ImageSet
from ..interpolation import BicubicInterpolator, pixel_grid
from ..pyramid import build_pyramid
from ..transform import apply_matrix, compose_inverse, jacobian, params_to_matrix, zoom_parameters
from ._estimator import SolverConfig
from ._gradients import image_gradient
from ._robust import lambda_schedule, robust_weights


logger = logging.getLogger(__name__)

MAX_ITER = 30


def laplacian(image: np.ndarray) -> FloatArray:
    """Five point Laplacian of every channel of an ``(ny, nx, nz)`` image."""
    kernel = np.array([1.0, -2.0, 1.0])
    return scipy.ndimage.correlate1d(
        image, kernel, axis=0, mode="nearest"
    ) + scipy.ndimage.correlate1d(image, kernel, axis=1, mode="nearest")


def _mask_weights(mask: np.ndarray) -> FloatArray:
    return np.clip(mask.reshape(-1, mask.shape[-1]).mean(axis=1), 0.0, None)


class InverseCompositionalEstimator:
    """Default `TransformEstimator`, working on numpy and scipy only."""

    def __init__(self, max_iter: int = MAX_ITER):
        self.max_iter = max_iter

    def estimate_transform(
        self, images: ImageSet, params: NumArray, config: SolverConfig
    ) -> FloatArray:
        nparams = len(params)
        nscales = max(config.nscales, 1)
        zfactor = config.zfactor
        first_scale = min(max(config.first_scale, 0), nscales - 1)

        pyramids = {
            name: build_pyramid(buffer, nscales, zfactor)
            for name, buffer in (
                ("image1", images.image1),
                ("image2", images.image2),
                ("mask1", images.mask1),
                ("mask2", images.mask2),
            )
            if buffer is not None
        }
        if config.laplacian:
            for name in ("image1", "image2"):
                pyramids[name] = [laplacian(level) for level in pyramids[name]]

        p = zoom_parameters(params, nparams, zfactor ** (nscales - 1))
        scales = range(nscales - 1, first_scale - 1, -1)
        for scale in tqdm(scales, desc="Scales", disable=not config.verbose):
            level = ImageSet(
                image1=pyramids["image1"][scale],
                image2=pyramids["image2"][scale],
                mask1=pyramids["mask1"][scale] if "mask1" in pyramids else None,
                mask2=pyramids["mask2"][scale] if "mask2" in pyramids else None,
            )
            p = self.estimate_level(level, p, config)
            logger.debug(f"Scale {scale} ({level.geometry.nx}x{level.geometry.ny}): p={p}")
            if scale > first_scale:
                p = zoom_parameters(p, nparams, 1.0 / zfactor)

        if first_scale > 0:
            p = zoom_parameters(p, nparams, (1.0 / zfactor) ** first_scale)
        return p

    def estimate_level(self, level: ImageSet, params: NumArray, config: SolverConfig) -> FloatArray:
        """Run the Gauss-Newton iterations on a single pyramid level."""
        nparams = len(params)
        nx, ny, nz = level.geometry
        x, y = pixel_grid(nx, ny)
        x, y = x.ravel(), y.ravel()

        gx, gy = image_gradient(level.image1, config.gradient_type)
        jac = jacobian(nparams, x, y)
        # (n_points, nz, nparams)
        steepest_descent = (
            gx.reshape(-1, nz)[:, :, np.newaxis] * jac[:, np.newaxis, 0, :]
            + gy.reshape(-1, nz)[:, :, np.newaxis] * jac[:, np.newaxis, 1, :]
        )
        template = level.image1.reshape(-1, nz)
        base_weights = np.ones(x.shape, dtype=np.float64)
        if level.mask1 is not None:
            base_weights *= _mask_weights(level.mask1)

        warped_image = BicubicInterpolator(level.image2)
        warped_mask = None if level.mask2 is None else BicubicInterpolator(level.mask2)
        lambdas = lambda_schedule(config.robust_lambda)

        p = np.array(params, dtype=np.float64)
        for niter in range(self.max_iter):
            xp, yp = apply_matrix(params_to_matrix(p, nparams), x, y)
            error = warped_image.sample(xp, yp) - template

            weights = base_weights * robust_weights(
                np.sum(error * error, axis=1), config.robust, next(lambdas)
            )
            if warped_mask is not None:
                weights *= _mask_weights(warped_mask.sample(xp, yp))
            if config.nan_if_outside:
                outside: BoolArray = warped_image.outside(xp, yp, config.delta)
                weights[outside] = 0.0

            hessian = np.einsum("n,nci,ncj->ij", weights, steepest_descent, steepest_descent)
            rhs = np.einsum("n,nci,nc->i", weights, steepest_descent, error)
            try:
                dp = np.linalg.solve(hessian, rhs)
            except np.linalg.LinAlgError:
                logger.debug(f"Singular system after {niter} iterations, stopping this scale")
                break
            if not np.all(np.isfinite(dp)):
                logger.debug(f"Non-finite update after {niter} iterations, stopping this scale")
                break

            p = compose_inverse(p, dp, nparams)
            if np.linalg.norm(dp) <= config.tol:
                break
        return p
