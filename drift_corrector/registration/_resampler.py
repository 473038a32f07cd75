"""Pixel-level resampling primitives consumed by the transform appliers.

The registration core only decides *what* to rotate, rescale or crop; the
`ImageResampler` does the pixel work. `SkimageResampler` is the default and
is backed by scikit-image.
"""

import enum
import math
from abc import ABC, abstractmethod

import numpy as np
from skimage.transform import AffineTransform, resize, warp

from ..image import Image, Rect


class HorizontalAlignment(enum.Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlignment(enum.Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class ImageResampler(ABC):
    """Rotate, rescale and crop capability used by the registration core."""

    @abstractmethod
    def rotate(self, image: Image, angle: float) -> Image:
        """Rotate every channel of `image` about its centre by `angle` radians.

        Positive angles turn the +x axis toward the +y axis (rows grow
        downwards). The result is large enough to hold the rotated content and
        never smaller than the input in either dimension.
        """
        pass

    @abstractmethod
    def rescale(
        self,
        image: Image,
        width: int,
        height: int,
        x_align: HorizontalAlignment = HorizontalAlignment.CENTER,
        y_align: VerticalAlignment = VerticalAlignment.CENTER,
        resize_content: bool = False,
    ) -> Image:
        """Bring `image` to `width` x `height`.

        Unless `resize_content` is set, the content is not resampled: the
        canvas is padded with zeros or cropped, keeping the content anchored
        on the requested edges.
        """
        pass

    @abstractmethod
    def crop(self, image: Image, rect: Rect) -> Image:
        pass


def _cast_like(plane: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Convert interpolated float pixels back to the image's pixel type."""
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(plane), info.min, info.max).astype(dtype)
    return plane.astype(dtype)


def _align_offset(old: int, new: int, alignment: enum.Enum) -> int:
    if alignment in (HorizontalAlignment.LEFT, VerticalAlignment.TOP):
        return 0
    if alignment in (HorizontalAlignment.RIGHT, VerticalAlignment.BOTTOM):
        return new - old
    return (new - old) // 2


def rotated_shape(width: int, height: int, angle: float) -> tuple[int, int]:
    """(width, height) of the canvas holding an image rotated by `angle`.

    The growth over the input size is kept even on both axes so the rotated
    content stays centred on whole pixels.
    """
    cos_a = abs(math.cos(angle))
    sin_a = abs(math.sin(angle))
    # rounding guards against cos(pi/2) ~ 6e-17 pushing ceil() up by a pixel
    new_width = max(width, math.ceil(round(width * cos_a + height * sin_a, 6)))
    new_height = max(height, math.ceil(round(width * sin_a + height * cos_a, 6)))
    new_width += (new_width - width) % 2
    new_height += (new_height - height) % 2
    return new_width, new_height


class SkimageResampler(ImageResampler):
    """Bilinear resampling with scikit-image."""

    def __init__(self, order: int = 1):
        self.order = order

    def rotate(self, image: Image, angle: float) -> Image:
        new_width, new_height = rotated_shape(image.width, image.height, angle)
        src_center = np.array([image.width, image.height]) / 2.0 - 0.5
        dst_center = np.array([new_width, new_height]) / 2.0 - 0.5

        # warp() wants the output -> input map: undo the rotation about the
        # destination centre, then move onto the source centre.
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        inverse_rotation = np.array([[cos_a, sin_a], [-sin_a, cos_a]])
        matrix = np.eye(3)
        matrix[:2, :2] = inverse_rotation
        matrix[:2, 2] = src_center - inverse_rotation @ dst_center
        inverse_map = AffineTransform(matrix=matrix)

        planes = []
        for c in range(image.size_c):
            rotated = warp(
                image.channel_as_float(c),
                inverse_map,
                output_shape=(new_height, new_width),
                order=self.order,
                mode="constant",
                cval=0.0,
                preserve_range=True,
            )
            planes.append(_cast_like(rotated, image.dtype))
        return Image(np.stack(planes, axis=0))

    def rescale(
        self,
        image: Image,
        width: int,
        height: int,
        x_align: HorizontalAlignment = HorizontalAlignment.CENTER,
        y_align: VerticalAlignment = VerticalAlignment.CENTER,
        resize_content: bool = False,
    ) -> Image:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid target size: {width}x{height}")

        if resize_content:
            planes = [
                _cast_like(
                    resize(
                        image.channel_as_float(c),
                        (height, width),
                        order=self.order,
                        preserve_range=True,
                        anti_aliasing=False,
                    ),
                    image.dtype,
                )
                for c in range(image.size_c)
            ]
            return Image(np.stack(planes, axis=0))

        out = np.zeros((image.size_c, height, width), dtype=image.dtype)
        dx = _align_offset(image.width, width, x_align)
        dy = _align_offset(image.height, height, y_align)

        # overlap of the source content, placed at (dx, dy), with the new canvas
        dst_x0, dst_y0 = max(dx, 0), max(dy, 0)
        dst_x1 = min(width, dx + image.width)
        dst_y1 = min(height, dy + image.height)
        if dst_x1 > dst_x0 and dst_y1 > dst_y0:
            out[:, dst_y0:dst_y1, dst_x0:dst_x1] = image.data[
                :, dst_y0 - dy : dst_y1 - dy, dst_x0 - dx : dst_x1 - dx
            ]
        return Image(out)

    def crop(self, image: Image, rect: Rect) -> Image:
        if (
            rect.x < 0
            or rect.y < 0
            or rect.width <= 0
            or rect.height <= 0
            or rect.x + rect.width > image.width
            or rect.y + rect.height > image.height
        ):
            raise ValueError(f"Crop rectangle {rect} does not fit in {image.bounds}")
        return Image(
            image.data[:, rect.y : rect.y + rect.height, rect.x : rect.x + rect.width]
        )
