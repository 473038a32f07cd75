"""Rigid registration engine.

This module estimates and applies the translation and rotation that align a
frame onto a reference image of the same modality.
"""

from .rigid_registration import (
    MIN_ROTATION_THRESHOLD,
    MIN_TRANSLATION_THRESHOLD,
    apply_rotation,
    apply_translation,
    correct_rotation,
    correct_translation,
    estimate_average_rotation,
    estimate_average_translation,
    estimate_rotation,
    estimate_translation,
)
from ._fft_backend import FFTBackend, create_fft_backend
from ._log_polar import to_log_polar
from ._resampler import (
    HorizontalAlignment,
    ImageResampler,
    SkimageResampler,
    VerticalAlignment,
)
from ._spectral_correlation import spectral_correlation

__all__ = [
    'estimate_translation',
    'estimate_average_translation',
    'apply_translation',
    'correct_translation',
    'estimate_rotation',
    'estimate_average_rotation',
    'apply_rotation',
    'correct_rotation',
    'spectral_correlation',
    'to_log_polar',
    'FFTBackend',
    'create_fft_backend',
    'ImageResampler',
    'SkimageResampler',
    'HorizontalAlignment',
    'VerticalAlignment',
    'MIN_TRANSLATION_THRESHOLD',
    'MIN_ROTATION_THRESHOLD',
]
