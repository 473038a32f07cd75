"""Tests for rotation estimation and correction."""
import math

import numpy as np
import pytest

from drift_corrector.image import ChannelSelection, DimensionMismatchError, DisplacementVector, Image
from drift_corrector.registration import (
    apply_rotation,
    correct_rotation,
    estimate_rotation,
)
from drift_corrector.testutil import blob_image, multichannel_image, textured_image

BUCKET = 2 * math.pi / 1080


@pytest.fixture(scope="module")
def blobs():
    return Image.from_array(blob_image(128))


@pytest.mark.parametrize("angle", [math.pi / 6, -math.pi / 9, 0.1])
def test_rotation_recovery(blobs, angle):
    rotated = apply_rotation(blobs, ChannelSelection.ALL, angle, preserve_size=True)

    estimated = estimate_rotation(blobs, 0, rotated, 0)

    assert abs(estimated - angle) <= BUCKET + 1e-9


def test_identical_images_have_no_rotation(blobs):
    assert estimate_rotation(blobs, 0, blobs, 0) == 0


def test_full_search_agrees_for_centered_content(blobs):
    rotated = apply_rotation(blobs, ChannelSelection.ALL, math.pi / 6)

    half = estimate_rotation(blobs, 0, rotated, 0)
    full = estimate_rotation(blobs, 0, rotated, 0, search_full=True)

    assert half == pytest.approx(full)


def test_coarser_angular_resolution(blobs):
    rotated = apply_rotation(blobs, ChannelSelection.ALL, math.pi / 4)

    estimated = estimate_rotation(blobs, 0, rotated, 0, theta_size=360, rho_size=120)

    assert abs(estimated - math.pi / 4) <= 2 * math.pi / 360 + 1e-9


def test_dimension_mismatch_without_hint(blobs):
    smaller = Image.from_array(blobs.channel(0)[:, :120])
    with pytest.raises(DimensionMismatchError):
        estimate_rotation(blobs, 0, smaller, 0)


def test_hint_aligns_target_before_estimation(blobs):
    # a frame whose canvas grew by a previous (-4, -8) translation
    grown = np.zeros((136, 132))
    grown[8:, 4:] = blobs.channel(0)
    source = Image.from_array(grown)

    estimated = estimate_rotation(
        source, 0, blobs, 0, hint=DisplacementVector(-4, -8), theta_size=360, rho_size=120
    )

    assert abs(estimated) <= 2 * math.pi / 360 + 1e-9


def test_correct_rotation(blobs):
    reference = apply_rotation(blobs, ChannelSelection.ALL, math.pi / 6)

    changed, corrected = correct_rotation(blobs, reference, theta_size=360, rho_size=120)

    assert changed
    assert corrected.bounds == blobs.bounds
    residual = estimate_rotation(corrected, 0, reference, 0, theta_size=360, rho_size=120)
    assert abs(residual) <= 2 * math.pi / 360 + 1e-9


def test_correct_rotation_zero_case(blobs):
    changed, corrected = correct_rotation(blobs, blobs, theta_size=360, rho_size=120)
    assert not changed
    assert corrected is blobs


def test_apply_rotation_zero_is_identity(blobs):
    assert apply_rotation(blobs, ChannelSelection.ALL, 0.0) is blobs


@pytest.mark.parametrize("angle", [0.05, math.pi / 6, -1.0, math.pi / 2])
def test_apply_rotation_preserve_size_invariant(angle):
    image = multichannel_image(textured_image(50, 30, seed=4), textured_image(50, 30, seed=5))
    for channel in (ChannelSelection.ALL, 0, 1):
        rotated = apply_rotation(image, channel, angle, preserve_size=True)
        assert (rotated.width, rotated.height, rotated.size_c) == (50, 30, 2)
        assert rotated.dtype == image.dtype


def test_apply_rotation_quarter_turn():
    plane = np.arange(64, dtype=np.float64).reshape(8, 8)
    rotated = apply_rotation(Image.from_array(plane), ChannelSelection.ALL, math.pi / 2)

    # +x turns toward +y: right of the centre ends up below it
    np.testing.assert_allclose(rotated.channel(0)[1:-1, 1:-1], np.rot90(plane, -1)[1:-1, 1:-1], atol=1e-6)


def test_apply_rotation_grows_single_channel():
    image = Image.from_array(textured_image(40, 40, seed=6))
    rotated = apply_rotation(image, ChannelSelection.ALL, math.pi / 4, preserve_size=False)

    assert rotated.width > 40 and rotated.height > 40
    assert (rotated.width - 40) % 2 == 0


def test_apply_rotation_one_channel_grow():
    still = textured_image(40, 30, seed=7)
    image = multichannel_image(still, textured_image(40, 30, seed=8))

    rotated = apply_rotation(image, 1, math.pi / 6, preserve_size=False)

    assert rotated.size_c == 2
    assert rotated.width > 40 and rotated.height > 30
    dw = (rotated.width - 40) // 2
    dh = (rotated.height - 30) // 2
    # the other channel is centred, unrotated, on the grown canvas
    np.testing.assert_array_equal(rotated.channel(0)[dh : dh + 30, dw : dw + 40], still)
    assert rotated.channel(0).sum() == still.sum()


def test_apply_rotation_one_channel_preserve():
    still = textured_image(40, 30, seed=7)
    image = multichannel_image(still, textured_image(40, 30, seed=8))

    rotated = apply_rotation(image, 1, math.pi / 6, preserve_size=True)

    np.testing.assert_array_equal(rotated.channel(0), still)
    assert not np.array_equal(rotated.channel(1), image.channel(1))
