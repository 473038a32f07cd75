"""Log-polar resampling of single-channel images."""

import math

import numpy as np

from ..image import Image
from ._typing_utils import FloatArray, NumArray

DEFAULT_THETA_SIZE = 1080
"""Number of angle buckets spanning [0, 2*pi)."""
DEFAULT_RHO_SIZE = 360
"""Number of radius rings."""


def sample_bilinear(plane: NumArray, x: FloatArray, y: FloatArray) -> FloatArray:
    """Bilinear samples of `plane` at continuous coordinates (x, y).

    Coordinates are measured from the top-left corner of the image, so the
    centre of pixel (i, j) sits at (i + 0.5, j + 0.5). Any sample whose
    neighbourhood touches the outermost row or column of pixels reads 0.
    """
    height, width = plane.shape
    x = np.asarray(x, dtype=np.float64) - 0.5
    y = np.asarray(y, dtype=np.float64) - 0.5
    x, y = np.broadcast_arrays(x, y)
    i = np.floor(x).astype(np.int64)
    j = np.floor(y).astype(np.int64)

    values = np.zeros(x.shape, dtype=np.float64)
    inside = (i > 0) & (i < width - 1) & (j > 0) & (j < height - 1)
    if not inside.any():
        return values

    i, j = i[inside], j[inside]
    fx = x[inside] - i
    fy = y[inside] - j
    mx = 1.0 - fx
    my = 1.0 - fy
    data = np.asarray(plane, dtype=np.float64)
    values[inside] = (
        mx * my * data[j, i]
        + fx * my * data[j, i + 1]
        + mx * fy * data[j + 1, i]
        + fx * fy * data[j + 1, i + 1]
    )
    return values


def to_log_polar(
    image: Image,
    center_x: int | None = None,
    center_y: int | None = None,
    theta_size: int = DEFAULT_THETA_SIZE,
    rho_size: int = DEFAULT_RHO_SIZE,
    channel: int = 0,
) -> Image:
    """Resample one channel of `image` around (center_x, center_y).

    The output is a float32 single-channel image whose columns are angle
    buckets and whose rows are radius rings, so a rotation of the input
    becomes a circular shift along x. Ring 0 holds the value at the centre;
    ring r samples radius r * hypot(center_x, center_y) / rho_size.
    """
    if theta_size <= 0 or rho_size <= 0:
        raise ValueError(f"Invalid log-polar size: {theta_size}x{rho_size}")
    if center_x is None:
        center_x = image.width // 2
    if center_y is None:
        center_y = image.height // 2
    plane = image.channel(channel)

    theta = np.arange(theta_size) * (2 * math.pi / theta_size)
    cos_theta = np.cos(theta)
    sin_theta = np.sin(theta)
    drho = math.sqrt(center_x * center_x + center_y * center_y) / rho_size

    out = np.empty((rho_size, theta_size), dtype=np.float64)
    out[0, :] = sample_bilinear(plane, np.array([center_x]), np.array([center_y]))[0]
    if rho_size > 1:
        rho = np.arange(1, rho_size)[:, np.newaxis] * drho
        out[1:, :] = sample_bilinear(
            plane,
            center_x + rho * cos_theta[np.newaxis, :],
            center_y + rho * sin_theta[np.newaxis, :],
        )
    return Image(out[np.newaxis, ...].astype(np.float32))
