import logging
import pathlib
from dataclasses import dataclass

import numpy as np

from .benchmarking_util import log_timing
from .grayscale import reduce_image_set
from .image_loaders import ImageSet, load_image_set
from .output import format_values, write_output
from .parameters import AlignmentParameters
from .pyramid import effective_num_scales
from .registration import InverseCompositionalEstimator, SolverConfig, TransformEstimator
from .transform import TransformSeeds, initial_parameters, params_to_matrix

logger = logging.getLogger(__name__)


@dataclass
class AlignmentResult:
    params: np.ndarray
    """Estimated transform parameters (length ``nparams``)."""
    matrix: np.ndarray
    """The same transform as a 3x3 homogeneous matrix."""
    nscales: int
    """Number of pyramid levels actually used."""
    output_path: pathlib.Path


class Aligner:
    """Runs the alignment pipeline for one pair of images.

    load -> (grayscale) -> pyramid depth -> initial transform -> estimation -> output
    """

    def __init__(
        self,
        params: AlignmentParameters,
        estimator: TransformEstimator | None = None,
        seeds: TransformSeeds | None = None,
    ):
        self.params = params
        self.estimator = estimator if estimator is not None else InverseCompositionalEstimator()
        self.seeds = seeds if seeds is not None else TransformSeeds()

    def solver_config(self, nscales: int) -> SolverConfig:
        return SolverConfig(
            nscales=nscales,
            zfactor=self.params.zfactor,
            tol=self.params.tol,
            robust=self.params.robust,
            robust_lambda=self.params.robust_lambda,
            first_scale=self.params.first_scale,
            nan_if_outside=self.params.nan_if_outside,
            delta=self.params.delta,
            gradient_type=self.params.gradient,
            laplacian=self.params.laplacian,
            verbose=self.params.verbose,
        )

    def estimation_images(self, images: ImageSet) -> ImageSet:
        """The buffers the estimator works on.

        Color inputs are reduced to gray when grayscale mode is on; the
        original buffers stay untouched for the warped image output.
        """
        if self.params.use_grayscale and images.geometry.nz == 3:
            logger.debug("Converting images to grayscale for the estimation")
            return reduce_image_set(images)
        return images

    def estimate(self, images: ImageSet) -> tuple[np.ndarray, int]:
        """Estimate the transform; returns the parameters and the number of scales used."""
        nx, ny, _ = images.geometry
        nscales = effective_num_scales(self.params.nscales, nx, ny, self.params.zfactor)
        if self.params.verbose:
            logger.info(self.params.summary(nscales))
        for note in self.params.substitutions:
            logger.debug(note)

        p = initial_parameters(self.params.nparams, self.seeds)
        estimation_images = self.estimation_images(images)
        with log_timing("Time", enabled=self.params.verbose):
            refined = self.estimator.estimate_transform(
                estimation_images, p, self.solver_config(nscales)
            )
        refined = np.asarray(refined, dtype=np.float64)
        if refined.shape != p.shape:
            raise RuntimeError(
                f"Estimator returned {refined.shape[0]} parameters, expected {len(p)}"
            )
        return refined, nscales

    def run(self) -> AlignmentResult:
        """Load the images, estimate the transform and write the output file.

        Raises:
            LoadError: the images or masks cannot be read, or do not have
                compatible geometries. Nothing is written in that case.
        """
        images = load_image_set(self.params.image1, self.params.image2)
        p, nscales = self.estimate(images)

        output_path = pathlib.Path(self.params.outfile)
        write_output(self.params.output_mode, output_path, p, images.image2)

        matrix = params_to_matrix(p, len(p))
        if self.params.verbose:
            logger.info("Transform: " + format_values(matrix))
        return AlignmentResult(params=p, matrix=matrix, nscales=nscales, output_path=output_path)
