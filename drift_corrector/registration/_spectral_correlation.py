"""FFT cross-correlation shared by the translation and rotation estimators."""

from typing import Optional

import numpy as np

from ._fft_backend import FFTBackend, NumpyBackend
from ._typing_utils import FloatArray, NumArray


def spectral_correlation(
    a: NumArray, b: NumArray, backend: Optional[FFTBackend] = None
) -> FloatArray:
    """Circular cross-correlation surface of two equal-size real 2D arrays.

    The cross-power spectrum F(a) * conj(F(b)) is inverted without dividing by
    its magnitude, so this is plain (unnormalized) correlation rather than
    phase correlation. Entry [y, x] scores `a` shifted by (-x, -y) against `b`.
    """
    if a.shape != b.shape:
        raise ValueError(f"Cannot correlate arrays of shapes {a.shape} and {b.shape}")
    backend = backend or NumpyBackend()

    a_fft = backend.fft2(backend.to_device(a))
    b_fft = backend.fft2(backend.to_device(b))
    correlation = backend.to_host(backend.ifft2(backend.cross_power(a_fft, b_fft)))
    # imaginary part is numerical noise for real inputs
    return np.ascontiguousarray(correlation.real, dtype=np.float64)


def arg_max(values: NumArray, n: Optional[int] = None) -> int:
    """Index of the maximum among the first `n` entries in row-major order.

    The first index wins on ties.
    """
    flat = values.ravel()
    if n is None:
        n = flat.size
    if n <= 0 or n > flat.size:
        raise ValueError(f"Invalid search length {n} for an array of {flat.size} values")
    return int(np.argmax(flat[:n]))
