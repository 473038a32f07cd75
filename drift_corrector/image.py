"""Image value types shared by the registration engine.

An `Image` is a multi-channel raster stored as a read-only numpy array of
shape (channels, height, width). Every operation that corrects an image
builds a new `Image`; nothing here is mutated in place.
"""

import enum
import math
from typing import NamedTuple, Sequence, Union

import numpy as np


class ChannelSelection(enum.Enum):
    """Channel selector meaning "every channel of the image"."""

    ALL = "all"


ChannelSelector = Union[ChannelSelection, int]


class Rect(NamedTuple):
    """An axis-aligned rectangle in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int


class DisplacementVector(NamedTuple):
    """A (dx, dy) shift of a target image relative to a source image."""

    dx: float
    dy: float

    def length_squared(self) -> float:
        return self.dx * self.dx + self.dy * self.dy

    def magnitude(self) -> float:
        return math.sqrt(self.length_squared())

    def rounded(self) -> tuple[int, int]:
        """Round half-up to whole pixels, the way the applier moves content."""
        return int(math.floor(self.dx + 0.5)), int(math.floor(self.dy + 0.5))

    def scale(self, factor: float) -> "DisplacementVector":
        return DisplacementVector(self.dx * factor, self.dy * factor)

    def __add__(self, other: "DisplacementVector") -> "DisplacementVector":  # type: ignore[override]
        return DisplacementVector(self.dx + other.dx, self.dy + other.dy)


class DimensionMismatchError(ValueError):
    """Two images that have to be compared pixel to pixel differ in size."""


class Image:
    """An immutable multi-channel raster.

    The pixel buffer keeps its declared numpy dtype, so signedness and
    integer/float type travel with the image.
    """

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray):
        if data.ndim != 3:
            raise ValueError(
                f"Image data must be 3-dimensional (C, Y, X), got shape {data.shape}"
            )
        if data.shape[0] == 0:
            raise ValueError("Image must have at least one channel")
        data = np.array(data, copy=True)
        data.setflags(write=False)
        self._data = data

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Image":
        """Wrap a 2D (Y, X) plane or a 3D (C, Y, X) stack."""
        array = np.asarray(array)
        if array.ndim == 2:
            return cls(array[np.newaxis, ...])
        return cls(array)

    @classmethod
    def empty(
        cls, width: int, height: int, size_c: int, dtype: np.dtype | type
    ) -> "Image":
        return cls(np.zeros((size_c, height, width), dtype=dtype))

    @classmethod
    def from_channels(cls, channels: Sequence[Union["Image", np.ndarray]]) -> "Image":
        """Stack single-channel images or 2D planes into one image."""
        if not channels:
            raise ValueError("Cannot build an image from an empty channel list")
        planes = []
        for channel in channels:
            if isinstance(channel, Image):
                if channel.size_c != 1:
                    raise ValueError(
                        f"Expected single-channel images, got {channel.size_c} channels"
                    )
                planes.append(channel.channel(0))
            else:
                planes.append(np.asarray(channel))
        shapes = {plane.shape for plane in planes}
        if len(shapes) != 1:
            raise DimensionMismatchError(
                f"All channels must share the same size, got {sorted(shapes)}"
            )
        return cls(np.stack(planes, axis=0))

    @property
    def data(self) -> np.ndarray:
        """The read-only (C, Y, X) pixel buffer."""
        return self._data

    @property
    def width(self) -> int:
        return self._data.shape[2]

    @property
    def height(self) -> int:
        return self._data.shape[1]

    @property
    def size_c(self) -> int:
        return self._data.shape[0]

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def is_signed(self) -> bool:
        return self._data.dtype.kind in ("i", "f")

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def check_channel(self, channel: int) -> None:
        if channel < 0 or channel >= self.size_c:
            raise ValueError(
                f"Invalid channel {channel} for an image with {self.size_c} channels"
            )

    def channels(self, selection: ChannelSelector) -> range:
        """The channel indices covered by `selection`."""
        if selection == ChannelSelection.ALL:
            return range(self.size_c)
        self.check_channel(selection)
        return range(selection, selection + 1)

    def channel(self, channel: int) -> np.ndarray:
        self.check_channel(channel)
        return self._data[channel]

    def channel_as_float(self, channel: int) -> np.ndarray:
        return self.channel(channel).astype(np.float64)

    def get_channel_image(self, selection: ChannelSelector) -> "Image":
        if selection == ChannelSelection.ALL:
            return self
        return Image(self.channel(selection)[np.newaxis, ...])

    def __repr__(self) -> str:
        return (
            f"Image(width={self.width}, height={self.height}, "
            f"size_c={self.size_c}, dtype={self.dtype})"
        )
