"""Tests for FFT backend selection."""
import numpy as np
import pytest

from drift_corrector.registration import _fft_backend
from drift_corrector.registration._fft_backend import NumpyBackend, create_fft_backend


def test_default_backend_is_numpy():
    backend = create_fft_backend()
    assert isinstance(backend, NumpyBackend)
    assert backend.name == "numpy"
    assert not backend.is_gpu


def test_unknown_engine():
    with pytest.raises(ValueError):
        create_fft_backend("opencl")


def test_numpy_round_trip():
    backend = NumpyBackend()
    data = np.arange(12, dtype=np.uint16).reshape(3, 4)
    restored = backend.to_host(backend.ifft2(backend.fft2(backend.to_device(data))))
    np.testing.assert_allclose(restored.real, data, atol=1e-12)


def test_cross_power_is_unnormalized():
    backend = NumpyBackend()
    a_fft = np.array([[2 + 1j, 3j]])
    b_fft = np.array([[1 - 1j, 2]])

    np.testing.assert_allclose(backend.cross_power(a_fft, b_fft), [[1 + 3j, 6j]])


class _UnavailableBackend:
    def __init__(self):
        raise ImportError("CuPy not available")


def test_unavailable_engine_falls_back_to_numpy(monkeypatch):
    monkeypatch.setitem(_fft_backend._BACKENDS, "cupy", _UnavailableBackend)

    with pytest.warns(UserWarning, match="cupy"):
        backend = create_fft_backend("cupy")

    assert backend.name == "numpy"


def test_unavailable_engine_without_fallback(monkeypatch):
    monkeypatch.setitem(_fft_backend._BACKENDS, "cupy", _UnavailableBackend)

    with pytest.warns(UserWarning):
        with pytest.raises(RuntimeError):
            create_fft_backend("cupy", allow_fallback=False)
