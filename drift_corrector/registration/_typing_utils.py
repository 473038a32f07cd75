"""Array aliases for the pixel planes passed between registration steps."""
from typing import Any

import numpy as np
import numpy.typing as npt

NumArray = npt.NDArray[Any]
"""Any pixel plane, whatever its dtype."""
FloatArray = npt.NDArray[np.floating]
"""Planes that went through interpolation or an FFT."""
