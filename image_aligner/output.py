"""Persistence of the estimated transform.

Three output formats are supported, selected by `OutputMode`:

- ``PARAMETERS``: a text file whose first line is the number of parameters
  and whose second line holds the parameter values.
- ``MATRIX``: a text file with the 3x3 matrix, one row per line.
- ``IMAGE``: the second image warped onto the first one.
"""

import enum
import logging
import pathlib

import numpy as np
import skimage.io
import tifffile

from ._typing_utils import FloatArray, NumArray
from .image_loaders import TIFF_SUFFIXES
from .interpolation import warp_image
from .transform import check_nparams, params_to_matrix

logger = logging.getLogger(__name__)

NUMBER_FORMAT = "%.14g"


class OutputMode(enum.IntEnum):
    PARAMETERS = 0
    MATRIX = 1
    IMAGE = 2


def format_values(values: NumArray) -> str:
    return " ".join(NUMBER_FORMAT % v for v in np.ravel(values))


def save_parameters(path: str | pathlib.Path, params: NumArray) -> None:
    params = np.asarray(params, dtype=np.float64)
    with open(path, "w") as f:
        f.write(f"{len(params)}\n")
        f.write(format_values(params) + "\n")


def read_parameters(path: str | pathlib.Path) -> FloatArray:
    """Read a parameter file written by `save_parameters`."""
    with open(path) as f:
        tokens = f.read().split()
    if not tokens:
        raise ValueError(f"Empty parameter file: {path}")
    nparams = check_nparams(int(tokens[0]))
    values = np.array([float(t) for t in tokens[1:]], dtype=np.float64)
    if len(values) != nparams:
        raise ValueError(f"Expected {nparams} parameters in {path}, found {len(values)}")
    return values


def save_matrix(path: str | pathlib.Path, matrix: NumArray) -> None:
    matrix = np.asarray(matrix, dtype=np.float64).reshape(3, 3)
    with open(path, "w") as f:
        for row in matrix:
            f.write(format_values(row) + "\n")


def read_matrix(path: str | pathlib.Path) -> FloatArray:
    """Read a matrix file written by `save_matrix`."""
    with open(path) as f:
        values = [float(t) for t in f.read().split()]
    if len(values) != 9:
        raise ValueError(f"Expected 9 matrix entries in {path}, found {len(values)}")
    return np.array(values, dtype=np.float64).reshape(3, 3)


def save_image(path: str | pathlib.Path, image: np.ndarray) -> None:
    """Write an ``(ny, nx, nz)`` float image.

    TIFF files keep the float values (NaN included). Other formats are
    written as 8 bits, with values clipped to [0, 255] and NaN set to 0.
    """
    path = pathlib.Path(path)
    data = image[:, :, 0] if image.shape[2] == 1 else image
    if path.suffix.lower() in TIFF_SUFFIXES:
        photometric = "rgb" if data.ndim == 3 else "minisblack"
        tifffile.imwrite(path, data.astype(np.float32), photometric=photometric)
    else:
        data = np.clip(np.nan_to_num(data, nan=0.0), 0, 255)
        skimage.io.imsave(path, np.rint(data).astype(np.uint8), check_contrast=False)


def write_output(
    mode: OutputMode | int,
    path: str | pathlib.Path,
    params: NumArray,
    image2: np.ndarray,
) -> None:
    """Persist the transform in the format selected by ``mode``.

    Args:
        mode: Output format.
        path: Output file.
        params: Estimated transform parameters.
        image2: The second image with its original channels, warped in
            `OutputMode.IMAGE`.
    """
    mode = OutputMode(mode)
    nparams = len(params)
    if mode == OutputMode.PARAMETERS:
        save_parameters(path, params)
    elif mode == OutputMode.MATRIX:
        save_matrix(path, params_to_matrix(params, nparams))
    else:
        save_image(path, warp_image(image2, params, nparams, nan_if_outside=True))
    logger.debug(f"Saved {mode.name.lower()} output to {path}")
