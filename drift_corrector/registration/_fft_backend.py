"""2D FFT engines for the spectral correlator.

numpy, cupy and torch all expose an `fft` submodule with `fft2`/`ifft2`, so
each backend only has to say which array module it wraps and how arrays move
to and from the device.
"""

import logging
import warnings
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

logger = logging.getLogger(__name__)

ENGINES = ("numpy", "torch", "cupy")


class FFTBackend(ABC):
    """Forward/inverse 2D FFT on one array library."""

    name: str = ""
    is_gpu: bool = False

    def __init__(self, xp: Any):
        self.xp = xp

    @abstractmethod
    def to_device(self, array: np.ndarray) -> Any:
        """Move a float64 host array onto the backend."""
        pass

    @abstractmethod
    def to_host(self, array: Any) -> np.ndarray:
        pass

    def fft2(self, array: Any) -> Any:
        return self.xp.fft.fft2(array)

    def ifft2(self, array: Any) -> Any:
        return self.xp.fft.ifft2(array)

    def cross_power(self, a_fft: Any, b_fft: Any) -> Any:
        """F(a) * conj(F(b)), left unnormalized."""
        return a_fft * self.xp.conj(b_fft)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({'GPU' if self.is_gpu else 'CPU'})"


class NumpyBackend(FFTBackend):
    name = "numpy"

    def __init__(self):
        super().__init__(np)

    def to_device(self, array: np.ndarray) -> np.ndarray:
        return np.asarray(array, dtype=np.float64)

    def to_host(self, array: np.ndarray) -> np.ndarray:
        return np.asarray(array)


class TorchBackend(FFTBackend):
    """Runs on CUDA when torch sees a device, on the CPU otherwise."""

    name = "torch"

    def __init__(self):
        try:
            import torch
        except ImportError as e:
            raise ImportError("PyTorch not available") from e
        super().__init__(torch)
        self.device = "cuda" if torch.cuda.is_available() else "cpu"
        self.is_gpu = self.device == "cuda"

    def to_device(self, array: np.ndarray) -> Any:
        return self.xp.as_tensor(
            np.asarray(array, dtype=np.float64), dtype=self.xp.float64, device=self.device
        )

    def to_host(self, array: Any) -> np.ndarray:
        return array.detach().cpu().numpy()


class CupyBackend(FFTBackend):
    name = "cupy"
    is_gpu = True

    def __init__(self):
        try:
            import cupy
        except ImportError as e:
            raise ImportError("CuPy not available") from e
        try:
            cupy.cuda.Device().synchronize()
        except Exception as e:
            raise RuntimeError(f"CuPy is installed but CUDA is unusable: {e}") from e
        super().__init__(cupy)

    def to_device(self, array: np.ndarray) -> Any:
        return self.xp.asarray(array, dtype=np.float64)

    def to_host(self, array: Any) -> np.ndarray:
        return self.xp.asnumpy(array)


_BACKENDS = {
    "numpy": NumpyBackend,
    "torch": TorchBackend,
    "cupy": CupyBackend,
}


def create_fft_backend(
    engine: Optional[str] = None, allow_fallback: bool = True
) -> FFTBackend:
    """Instantiate the FFT engine named `engine` (numpy when None).

    Args:
        engine: One of ENGINES
        allow_fallback: Use numpy when the requested engine cannot start

    Raises:
        ValueError: If the engine name is unknown
        RuntimeError: If the engine cannot start and no fallback is allowed
    """
    engine = engine or "numpy"
    if engine not in _BACKENDS:
        raise ValueError(f"Unknown FFT engine {engine!r}, expected one of {ENGINES}")

    candidates = [engine]
    if allow_fallback and engine != "numpy":
        candidates.append("numpy")

    for candidate in candidates:
        try:
            backend = _BACKENDS[candidate]()
        except (ImportError, RuntimeError) as e:
            warnings.warn(f"Could not start the {candidate} FFT engine: {e}")
            continue
        logger.info(f"FFT engine: {backend!r}")
        return backend

    raise RuntimeError(f"No usable FFT engine among {candidates}")
