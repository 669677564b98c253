import contextvars
import logging
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    PrivateAttr,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_settings import CliPositionalArg

from .output import OutputMode
from .transform import VALID_NPARAMS

logger = logging.getLogger(__name__)

DEFAULT_OUTFILE = "transform.mat"
DEFAULT_OUTPUT = OutputMode.PARAMETERS.value
DEFAULT_NSCALES = 0
DEFAULT_ZFACTOR = 0.5
DEFAULT_TOL = 0.001
DEFAULT_NPARAMS = 8
DEFAULT_ROBUST = 3
DEFAULT_LAMBDA = 0.0
DEFAULT_FIRST_SCALE = 0
DEFAULT_GRAYMETHOD = 1
DEFAULT_DELTA = 5
DEFAULT_NANIFOUTSIDE = 1
DEFAULT_GRADIENT = 3


# Notes about substituted defaults, collected while a model is being validated.
_substitutions: contextvars.ContextVar[Optional[list[str]]] = contextvars.ContextVar(
    "substitutions", default=None
)


def _replace_invalid(info: ValidationInfo, value: Any, valid: bool, default: Any) -> Any:
    """Substitute the default for an out-of-range value instead of failing."""
    if valid:
        return value
    note = f"Invalid {info.field_name}={value!r}, using default {default!r}"
    collected = _substitutions.get()
    if collected is None:
        logger.debug(note)
    else:
        collected.append(note)
    return default


class AlignmentParameters(
    BaseModel,
    use_attribute_docstrings=True,
):
    """Estimate the parametric transform that aligns image2 onto image1.

    Out-of-range values are not errors: each one is silently replaced by its
    default, so a sloppy command line still produces a result.
    """

    model_config = ConfigDict(validate_assignment=True)

    _substitution_notes: list[str] = PrivateAttr(default_factory=list)

    image1: CliPositionalArg[str]
    """First (reference) image, optionally followed by ':mask' to give its mask."""

    image2: CliPositionalArg[str]
    """Second image, to be aligned onto the first one; also accepts ':mask'."""

    outfile: str = DEFAULT_OUTFILE
    """Output file that will contain the computed transformation."""

    output: int = DEFAULT_OUTPUT
    """Output format: 0 parametrization, 1 3x3 projective matrix, 2 warped image."""

    nscales: int = DEFAULT_NSCALES
    """Number of scales of the coarse-to-fine scheme; 0 or less picks as many as the image allows."""

    zfactor: float = DEFAULT_ZFACTOR
    """Zoom factor between consecutive scales, in the range (0, 1)."""

    tol: float = DEFAULT_TOL
    """Threshold for the convergence criterion."""

    nparams: int = DEFAULT_NPARAMS
    """Transformation type: 2 translation, 3 Euclidean, 4 similarity, 6 affinity, 8 homography."""

    robust: int = DEFAULT_ROBUST
    """Robust error function: 0 L2, 1 truncated quadratic, 2 Geman & McClure, 3 Lorentzian, 4 Charbonnier."""

    robust_lambda: float = DEFAULT_LAMBDA
    """Parameter of the robust error function; 0 means it is computed automatically."""

    first_scale: int = DEFAULT_FIRST_SCALE
    """First (finest) scale used in the pyramid."""

    graymethod: int = DEFAULT_GRAYMETHOD
    """Convert color images to grayscale before estimating (1) or not (0)."""

    delta: int = DEFAULT_DELTA
    """Distance to the boundary under which warped pixels are discarded."""

    nanifoutside: int = DEFAULT_NANIFOUTSIDE
    """Discard pixels that fall outside the second image (1) or not (0)."""

    gradient: int = DEFAULT_GRADIENT
    """Gradient kernel: 0 central differences, 1 hypomode, 2 Farid 3x3, 3 Farid 5x5, 4 sigma 3, 5 sigma 6."""

    laplacian: bool = False
    """Apply a Laplacian to every scale before estimating."""

    verbose: bool = False
    """Report the parameters, timing and final transform."""

    @model_validator(mode="wrap")
    @classmethod
    def _collect_substitutions(cls, data: Any, handler) -> Any:
        token = _substitutions.set([])
        try:
            result = handler(data)
            notes = _substitutions.get()
        finally:
            _substitutions.reset(token)
        if isinstance(result, AlignmentParameters):
            result._substitution_notes = result._substitution_notes + notes
        else:
            for note in notes:
                logger.debug(note)
        return result

    @field_validator("output")
    @classmethod
    def _check_output(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, v in {m.value for m in OutputMode}, DEFAULT_OUTPUT)

    @field_validator("zfactor")
    @classmethod
    def _check_zfactor(cls, v: float, info: ValidationInfo) -> float:
        return _replace_invalid(info, v, 0 < v < 1, DEFAULT_ZFACTOR)

    @field_validator("tol")
    @classmethod
    def _check_tol(cls, v: float, info: ValidationInfo) -> float:
        return _replace_invalid(info, v, v >= 0, DEFAULT_TOL)

    @field_validator("nparams")
    @classmethod
    def _check_nparams(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, v in VALID_NPARAMS, DEFAULT_NPARAMS)

    @field_validator("robust")
    @classmethod
    def _check_robust(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, 0 <= v <= 4, DEFAULT_ROBUST)

    @field_validator("robust_lambda")
    @classmethod
    def _check_lambda(cls, v: float, info: ValidationInfo) -> float:
        return _replace_invalid(info, v, v >= 0, DEFAULT_LAMBDA)

    @field_validator("delta")
    @classmethod
    def _check_delta(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, v >= 0, DEFAULT_DELTA)

    @field_validator("graymethod")
    @classmethod
    def _check_graymethod(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, v in (0, 1), DEFAULT_GRAYMETHOD)

    @field_validator("nanifoutside")
    @classmethod
    def _check_nanifoutside(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, v in (0, 1), DEFAULT_NANIFOUTSIDE)

    @field_validator("gradient")
    @classmethod
    def _check_gradient(cls, v: int, info: ValidationInfo) -> int:
        return _replace_invalid(info, v, 0 <= v <= 5, DEFAULT_GRADIENT)

    @property
    def substitutions(self) -> list[str]:
        """Out-of-range values that were replaced by their defaults."""
        return list(self._substitution_notes)

    @property
    def output_mode(self) -> OutputMode:
        return OutputMode(self.output)

    @property
    def use_grayscale(self) -> bool:
        return self.graymethod == 1

    @property
    def nan_if_outside(self) -> bool:
        return self.nanifoutside == 1

    def summary(self, nscales: int) -> str:
        """One line description of the effective configuration."""
        return (
            f"Parameters: scales={nscales}, zoom={self.zfactor:f}, TOL={self.tol:f}, "
            f"transform type={self.nparams}, robust function={self.robust}, "
            f"lambda={self.robust_lambda:f}, output file={self.outfile}, "
            f"delta={self.delta}, nanifoutside={self.nanifoutside}, "
            f"graymethod={self.graymethod}, first scale={self.first_scale}, "
            f"gradient type={self.gradient}, type output={self.output}"
        )

    @classmethod
    def from_json_file(cls, json_path: str) -> "AlignmentParameters":
        """Create parameters from a JSON file.

        Args:
            json_path: Path to JSON file containing parameters

        Returns:
            AlignmentParameters: New instance with values from JSON
        """
        with open(json_path) as f:
            return cls.model_validate_json(f.read())

    def to_json_file(self, json_path: str) -> None:
        """Save parameters to a JSON file.

        Args:
            json_path: Path where JSON file should be saved
        """
        with open(json_path, "w") as f:
            f.write(self.model_dump_json(indent=2))
