import pathlib
from typing import Sequence

import numpy as np

from .image import Image

PARAMETERS_FIXTURE_FILE = (
    pathlib.Path(__file__).parent.parent
    / "test_fixtures"
    / "parameters_test"
    / "parameters.json"
)


def block_image(
    width: int,
    height: int,
    center: tuple[int, int],
    size: int = 10,
    value: int = 1000,
    dtype: type = np.uint16,
) -> np.ndarray:
    """A dark (height, width) plane with a bright square block centered at (x, y)."""
    plane = np.zeros((height, width), dtype=dtype)
    cx, cy = center
    half = size // 2
    plane[cy - half : cy - half + size, cx - half : cx - half + size] = value
    return plane


def textured_image(width: int, height: int, seed: int = 0, dtype: type = np.uint16) -> np.ndarray:
    """A (height, width) plane of uniform noise."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 4096, size=(height, width)).astype(dtype)


def blob_image(
    size: int = 128,
    blobs: Sequence[tuple[float, float, float, float]] = (
        (20.0, -8.0, 4.0, 1000.0),
        (-12.0, 22.0, 3.0, 700.0),
        (-18.0, -15.0, 5.0, 500.0),
        (6.0, 28.0, 3.0, 900.0),
    ),
) -> np.ndarray:
    """A (size, size) float plane of Gaussian blobs.

    Each blob is (x offset, y offset, sigma, amplitude) relative to the image
    centre; the blobs are laid out without rotational symmetry.
    """
    center = size / 2.0 - 0.5
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float64)
    plane = np.zeros((size, size), dtype=np.float64)
    for bx, by, sigma, amplitude in blobs:
        plane += amplitude * np.exp(
            -((xx - center - bx) ** 2 + (yy - center - by) ** 2) / (2 * sigma**2)
        )
    return plane


def circular_shift(plane: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """Move the content of a plane by (dx, dy), wrapping around the edges."""
    return np.roll(plane, shift=(dy, dx), axis=(0, 1))


def multichannel_image(*planes: np.ndarray) -> Image:
    return Image(np.stack(planes, axis=0))
