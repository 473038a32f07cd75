"""Rigid (translation and rotation) registration of 2D images.

Translations are recovered from the peak of the FFT cross-correlation of two
channels. Rotations are recovered the same way after resampling both images
to log-polar coordinates, where a rotation about the centre becomes a shift
along the angle axis.

Sign conventions: estimators report how the *target* is moved relative to the
*source*, and the appliers move an image by exactly that amount. So
`apply_translation(source, ALL, estimate_translation(source, c, target, c))`
lines `source` up with `target`, and likewise for rotations. Angles are in
radians; positive angles turn the +x axis toward the +y axis (rows grow
downwards).
"""

import logging
import math
from typing import Optional

import numpy as np

from ..image import (
    ChannelSelection,
    ChannelSelector,
    DimensionMismatchError,
    DisplacementVector,
    Image,
    Rect,
)
from ._fft_backend import FFTBackend
from ._log_polar import DEFAULT_RHO_SIZE, DEFAULT_THETA_SIZE, to_log_polar
from ._resampler import (
    HorizontalAlignment,
    ImageResampler,
    SkimageResampler,
    VerticalAlignment,
)
from ._spectral_correlation import arg_max, spectral_correlation

logger = logging.getLogger(__name__)

MIN_TRANSLATION_THRESHOLD = 0.001
"""Squared length above which an averaged translation is applied."""
MIN_ROTATION_THRESHOLD = 0.001
"""Absolute angle (radians) above which an averaged rotation is applied."""


def _check_same_bounds(source: Image, target: Image) -> None:
    if source.bounds != target.bounds:
        raise DimensionMismatchError(
            f"Cannot register images of different size: "
            f"{source.width}x{source.height} vs {target.width}x{target.height}"
        )


# ============================================================================
# TRANSLATION
# ============================================================================

def estimate_translation(
    source: Image,
    source_channel: int,
    target: Image,
    target_channel: int,
    backend: Optional[FFTBackend] = None,
) -> DisplacementVector:
    """Find the integer shift of `target` relative to `source`.

    Args:
        source: Source image
        source_channel: Channel of the source used for the comparison
        target: Target image, same width and height as the source
        target_channel: Channel of the target used for the comparison
        backend: FFT backend, numpy when omitted

    Returns:
        The (dx, dy) displacement, each component in (-size/2, size/2]

    Raises:
        DimensionMismatchError: If the two images differ in size
    """
    source.check_channel(source_channel)
    target.check_channel(target_channel)
    _check_same_bounds(source, target)

    width, height = source.width, source.height
    logger.debug(f"Finding translation between images: {width}x{height}")

    correlation = spectral_correlation(
        source.channel_as_float(source_channel),
        target.channel_as_float(target_channel),
        backend,
    )
    peak = arg_max(correlation)

    trans_x = peak % width
    trans_y = peak // width
    # undo the circular wrap of the FFT
    if trans_x > width // 2:
        trans_x -= width
    if trans_y > height // 2:
        trans_y -= height

    translation = DisplacementVector(float(-trans_x), float(-trans_y))
    logger.debug(f"Found translation: ({translation.dx}, {translation.dy})")
    return translation


def estimate_average_translation(
    image: Image,
    reference: Image,
    channel: ChannelSelector = ChannelSelection.ALL,
    backend: Optional[FFTBackend] = None,
) -> DisplacementVector:
    """Average of the per-channel shifts of `reference` relative to `image`.

    Channels are averaged without any outlier rejection.
    """
    channels = image.channels(channel)
    total = DisplacementVector(0.0, 0.0)
    for c in channels:
        total = total + estimate_translation(image, c, reference, c, backend)
    return total.scale(1.0 / len(channels))


def apply_translation(
    image: Image,
    channel: ChannelSelector,
    vector: DisplacementVector,
    preserve_size: bool = True,
    resampler: Optional[ImageResampler] = None,
) -> Image:
    """Shift the selected channel(s) of `image` by `vector`, rounded to pixels.

    The canvas first grows by |dx| x |dy|. The selected channels are copied at
    (max(dx, 0), max(dy, 0)) and every other channel at (max(-dx, 0),
    max(-dy, 0)), which keeps the unselected channels still relative to the
    original frame once the canvas is cropped back.

    Args:
        image: Image to shift
        channel: A channel index, or ChannelSelection.ALL
        vector: Displacement to apply
        preserve_size: Crop the grown canvas back to the original size
        resampler: Crop provider, SkimageResampler when omitted

    Returns:
        A new image, or `image` itself when the rounded shift is (0, 0)
    """
    dx, dy = vector.rounded()
    logger.debug(f"Applying translation: dx={dx} dy={dy}")
    if dx == 0 and dy == 0:
        return image
    selected = set(image.channels(channel))

    canvas = np.zeros(
        (image.size_c, image.height + abs(dy), image.width + abs(dx)), dtype=image.dtype
    )
    for c in range(image.size_c):
        if c in selected:
            x0, y0 = max(dx, 0), max(dy, 0)
        else:
            x0, y0 = max(-dx, 0), max(-dy, 0)
        canvas[c, y0 : y0 + image.height, x0 : x0 + image.width] = image.channel(c)
    grown = Image(canvas)

    if not preserve_size:
        return grown
    resampler = resampler or SkimageResampler()
    return resampler.crop(
        grown, Rect(max(0, -dx), max(0, -dy), image.width, image.height)
    )


def correct_translation(
    image: Image,
    reference: Image,
    channel: ChannelSelector = ChannelSelection.ALL,
    threshold: float = MIN_TRANSLATION_THRESHOLD,
    backend: Optional[FFTBackend] = None,
    resampler: Optional[ImageResampler] = None,
) -> tuple[bool, Image]:
    """Move `image` onto `reference` using the channel-averaged translation.

    Returns:
        (changed, new_image); `image` is returned unmodified when the averaged
        translation is not significant
    """
    translation = estimate_average_translation(image, reference, channel, backend)
    if translation.length_squared() <= threshold:
        logger.debug("Translation correction skipped (too small)")
        return False, image

    corrected = apply_translation(
        image, ChannelSelection.ALL, translation, preserve_size=True, resampler=resampler
    )
    logger.info(
        f"Applied translation correction: ({translation.dx}, {translation.dy})"
    )
    return True, corrected


# ============================================================================
# ROTATION
# ============================================================================

def estimate_rotation(
    source: Image,
    source_channel: int,
    target: Image,
    target_channel: int,
    hint: Optional[DisplacementVector] = None,
    theta_size: int = DEFAULT_THETA_SIZE,
    rho_size: int = DEFAULT_RHO_SIZE,
    search_full: bool = False,
    backend: Optional[FFTBackend] = None,
    resampler: Optional[ImageResampler] = None,
) -> float:
    """Find the rotation of `target` relative to `source`, in radians.

    When the images differ in size and a previous translation `hint` is given,
    the target canvas is first brought to the source size, keeping its
    content on the left edge when hint.dx > 0 (right edge otherwise) and on
    the top edge when hint.dy > 0 (bottom edge otherwise).

    Only the first half of the flattened log-polar correlation (the inner
    rings) is searched for the peak unless `search_full` is set.

    Raises:
        DimensionMismatchError: If the images differ in size and no hint is given
    """
    source.check_channel(source_channel)
    target.check_channel(target_channel)
    if source.bounds != target.bounds:
        if hint is None:
            _check_same_bounds(source, target)
        # the source was most probably translated (and grown) before
        x_align = HorizontalAlignment.LEFT if hint.dx > 0 else HorizontalAlignment.RIGHT
        y_align = VerticalAlignment.TOP if hint.dy > 0 else VerticalAlignment.BOTTOM
        resampler = resampler or SkimageResampler()
        target = resampler.rescale(
            target, source.width, source.height, x_align, y_align
        )

    source_log_polar = to_log_polar(
        source, theta_size=theta_size, rho_size=rho_size, channel=source_channel
    )
    target_log_polar = to_log_polar(
        target, theta_size=theta_size, rho_size=rho_size, channel=target_channel
    )

    correlation = spectral_correlation(
        source_log_polar.channel(0), target_log_polar.channel(0), backend
    )
    n = correlation.size if search_full else correlation.size // 2
    peak = arg_max(correlation, n)

    # the angle runs along x
    rot_x = peak % theta_size
    if rot_x > theta_size // 2:
        rot_x -= theta_size

    rotation = -rot_x * 2 * math.pi / theta_size
    logger.debug(f"Found rotation: {math.degrees(rotation)} degrees")
    return rotation


def estimate_average_rotation(
    image: Image,
    reference: Image,
    channel: ChannelSelector = ChannelSelection.ALL,
    hint: Optional[DisplacementVector] = None,
    theta_size: int = DEFAULT_THETA_SIZE,
    rho_size: int = DEFAULT_RHO_SIZE,
    search_full: bool = False,
    backend: Optional[FFTBackend] = None,
    resampler: Optional[ImageResampler] = None,
) -> float:
    """Mean of the per-channel rotations of `reference` relative to `image`."""
    channels = image.channels(channel)
    angle = 0.0
    for c in channels:
        angle += estimate_rotation(
            image,
            c,
            reference,
            c,
            hint=hint,
            theta_size=theta_size,
            rho_size=rho_size,
            search_full=search_full,
            backend=backend,
            resampler=resampler,
        )
    return angle / len(channels)


def apply_rotation(
    image: Image,
    channel: ChannelSelector,
    angle: float,
    preserve_size: bool = True,
    resampler: Optional[ImageResampler] = None,
) -> Image:
    """Rotate the selected channel(s) of `image` about its centre.

    Rotation grows the canvas. With `preserve_size` the rotated channel is
    cropped back to the original size around the centre; otherwise the grown
    raster is kept and, for a single rotated channel of a multi-channel image,
    the other channels are padded to the grown size around their content.

    Returns:
        A new image, or `image` itself when `angle` is 0
    """
    if angle == 0:
        return image
    resampler = resampler or SkimageResampler()

    rotated = resampler.rotate(image.get_channel_image(channel), angle)
    dw = (rotated.width - image.width) // 2
    dh = (rotated.height - image.height) // 2
    centered = Rect(dw, dh, image.width, image.height)

    if channel == ChannelSelection.ALL or image.size_c == 1:
        if preserve_size:
            return resampler.crop(rotated, centered)
        return rotated

    planes = []
    for c in range(image.size_c):
        if c == channel:
            if preserve_size:
                planes.append(resampler.crop(rotated, centered).channel(0))
            else:
                planes.append(rotated.channel(0))
        elif preserve_size:
            planes.append(image.channel(c))
        else:
            # enlarge and center the non-rotated channels
            grown = np.zeros((rotated.height, rotated.width), dtype=image.dtype)
            grown[dh : dh + image.height, dw : dw + image.width] = image.channel(c)
            planes.append(grown)
    return Image.from_channels(planes)


def correct_rotation(
    image: Image,
    reference: Image,
    channel: ChannelSelector = ChannelSelection.ALL,
    threshold: float = MIN_ROTATION_THRESHOLD,
    theta_size: int = DEFAULT_THETA_SIZE,
    rho_size: int = DEFAULT_RHO_SIZE,
    search_full: bool = False,
    backend: Optional[FFTBackend] = None,
    resampler: Optional[ImageResampler] = None,
) -> tuple[bool, Image]:
    """Rotate `image` onto `reference` using the channel-averaged rotation.

    Returns:
        (changed, new_image); `image` is returned unmodified when the averaged
        angle is not significant
    """
    angle = estimate_average_rotation(
        image,
        reference,
        channel,
        theta_size=theta_size,
        rho_size=rho_size,
        search_full=search_full,
        backend=backend,
        resampler=resampler,
    )
    if abs(angle) <= threshold:
        logger.debug("Rotation correction skipped (too small)")
        return False, image

    corrected = apply_rotation(
        image, ChannelSelection.ALL, angle, preserve_size=True, resampler=resampler
    )
    logger.info(f"Applied rotation correction: {math.degrees(angle)} degrees")
    return True, corrected
