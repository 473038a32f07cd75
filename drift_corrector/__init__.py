"""Drift Corrector Package.

This package registers the frames of a time-lapse acquisition onto a
reference frame, correcting rigid drift (translation) and rotation.

Main functionality:
- Translation estimation: FFT cross-correlation peak search
- Rotation estimation: the same correlation on log-polar resampled images
- Correction appliers that return new images, optionally keeping the frame size
- Series registration: correct a whole frame series against a reference frame
- Multiple FFT backends for CPU and GPU acceleration

The package exposes the key registration functions at the top level for convenience.
"""

from .image import (
    ChannelSelection,
    DimensionMismatchError,
    DisplacementVector,
    Image,
    Rect,
)
from .parameters import RegistrationParameters
from .registration.rigid_registration import (
    apply_rotation,
    apply_translation,
    correct_rotation,
    correct_translation,
    estimate_rotation,
    estimate_translation,
)
from .registration._fft_backend import create_fft_backend, FFTBackend
from .registration._resampler import ImageResampler, SkimageResampler
from .series import SeriesRegistration, SeriesRegistrationResult, ProgressCallbacks

__all__ = [
    'Image',
    'Rect',
    'ChannelSelection',
    'DisplacementVector',
    'DimensionMismatchError',
    'RegistrationParameters',
    'estimate_translation',
    'correct_translation',
    'apply_translation',
    'estimate_rotation',
    'correct_rotation',
    'apply_rotation',
    'create_fft_backend',
    'FFTBackend',
    'ImageResampler',
    'SkimageResampler',
    'SeriesRegistration',
    'SeriesRegistrationResult',
    'ProgressCallbacks',
]
