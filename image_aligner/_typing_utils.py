"""Type aliases for the arrays passed between the aligner and its estimators.

Images are float64 arrays shaped ``(ny, nx, nz)``; transform parameters are
1-D float64 vectors of length ``nparams``.
"""
from typing import Any

import numpy as np
import numpy.typing as npt

# Array type aliases
NumArray = npt.NDArray[Any]
FloatArray = npt.NDArray[np.float64]
BoolArray = npt.NDArray[np.bool_]
