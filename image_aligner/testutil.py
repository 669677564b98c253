import contextlib
import pathlib
import tempfile
from typing import Generator, Optional

import numpy as np
import skimage.io
import tifffile

from .parameters import AlignmentParameters

PARAMETERS_FIXTURE_FILE = (
    pathlib.Path(__file__).parent.parent
    / "test_fixtures"
    / "parameters_test"
    / "parameters.json"
)


def smooth_test_image(
    nx: int, ny: int, shift: tuple[float, float] = (0.0, 0.0), nz: int = 1
) -> np.ndarray:
    """A smooth synthetic ``(ny, nx, nz)`` image with values in [0, 255].

    With ``shift=(tx, ty)`` the content is moved by that amount, so that the
    translation aligning the shifted image onto the unshifted one is
    ``(tx, ty)``.
    """
    y, x = np.mgrid[0:ny, 0:nx].astype(np.float64)
    x = x - shift[0]
    y = y - shift[1]
    cx, cy = 0.55 * nx, 0.45 * ny
    base = (
        120 * np.exp(-((x - cx) ** 2 + (y - cy) ** 2) / (2 * (0.18 * nx) ** 2))
        + 60 * np.exp(-((x - 0.3 * nx) ** 2 + (y - 0.7 * ny) ** 2) / (2 * (0.1 * nx) ** 2))
        + 30 * np.sin(x / 9.0) * np.cos(y / 11.0)
        + 40
    )
    channels = [base * (1.0 - 0.1 * c) for c in range(nz)]
    return np.stack(channels, axis=-1)


def random_test_image(nx: int, ny: int, nz: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(ny, nx, nz)).astype(np.uint8)


def write_test_image(path: pathlib.Path, image: np.ndarray) -> pathlib.Path:
    """Write an ``(ny, nx, nz)`` image, as float TIFF or as 8-bit otherwise."""
    data = image[:, :, 0] if image.ndim == 3 and image.shape[2] == 1 else image
    if path.suffix.lower() in (".tif", ".tiff"):
        photometric = "rgb" if data.ndim == 3 else "minisblack"
        tifffile.imwrite(path, np.asarray(data, dtype=np.float32), photometric=photometric)
    else:
        skimage.io.imsave(path, np.asarray(data, dtype=np.uint8), check_contrast=False)
    return path


@contextlib.contextmanager
def temporary_image_pair(
    image1: np.ndarray,
    image2: np.ndarray,
    suffix: str = ".tif",
    mask1: Optional[np.ndarray] = None,
    mask2: Optional[np.ndarray] = None,
    **param_overrides,
) -> Generator[AlignmentParameters, None, None]:
    """Write an image pair (and masks) to a temporary folder.

    Yields parameters referencing those files, with the output file placed in
    the same folder.
    """
    with tempfile.TemporaryDirectory() as d:
        base_dir = pathlib.Path(d)
        ref1 = str(write_test_image(base_dir / f"image1{suffix}", image1))
        ref2 = str(write_test_image(base_dir / f"image2{suffix}", image2))
        if mask1 is not None:
            ref1 += ":" + str(write_test_image(base_dir / f"mask1{suffix}", mask1))
        if mask2 is not None:
            ref2 += ":" + str(write_test_image(base_dir / f"mask2{suffix}", mask2))
        param_overrides.setdefault("outfile", str(base_dir / "transform.mat"))
        yield AlignmentParameters(image1=ref1, image2=ref2, **param_overrides)
