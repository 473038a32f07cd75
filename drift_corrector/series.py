"""Drift and rotation correction of a series of frames against a reference frame."""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from .image import ChannelSelection, DimensionMismatchError, DisplacementVector, Image
from .parameters import RegistrationParameters
from .registration import (
    FFTBackend,
    ImageResampler,
    SkimageResampler,
    apply_rotation,
    apply_translation,
    create_fft_backend,
    estimate_average_rotation,
    estimate_average_translation,
)

logger = logging.getLogger(__name__)


@dataclass
class ProgressCallbacks:
    update_progress: Callable[[int, int], None]
    frame_registered: Callable[["FrameRegistration"], None]
    should_stop: Callable[[], bool]

    @classmethod
    def no_op(cls):
        return cls(
            update_progress=lambda _a, _b: None,
            frame_registered=lambda _r: None,
            should_stop=lambda: False,
        )


@dataclass
class FrameRegistration:
    """What was done to a single frame."""

    frame: int
    translation: DisplacementVector = DisplacementVector(0.0, 0.0)
    """Total translation applied, residual translation included."""
    rotation: float = 0.0
    """Rotation applied, in radians."""
    translated: bool = False
    rotated: bool = False
    error: Optional[str] = None
    """Why the frame was left uncorrected, if registration failed."""

    @property
    def corrected(self) -> bool:
        return self.translated or self.rotated


@dataclass
class SeriesRegistrationResult:
    frames: list[Image]
    """The whole series; frames outside the processed range are passed through."""
    records: list[FrameRegistration] = field(default_factory=list)

    @property
    def frames_processed(self) -> int:
        return len(self.records)

    @property
    def frames_corrected(self) -> int:
        return sum(1 for r in self.records if r.corrected)

    @property
    def total_translations(self) -> int:
        return sum(1 for r in self.records if r.translated)

    @property
    def total_rotations(self) -> int:
        return sum(1 for r in self.records if r.rotated)

    @property
    def average_translation_magnitude(self) -> float:
        translated = [r.translation.magnitude() for r in self.records if r.translated]
        return sum(translated) / len(translated) if translated else 0.0

    @property
    def average_rotation_angle(self) -> float:
        """Mean absolute angle (radians) of the applied rotations."""
        rotated = [abs(r.rotation) for r in self.records if r.rotated]
        return sum(rotated) / len(rotated) if rotated else 0.0

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "frame": [r.frame for r in self.records],
                "dx": [r.translation.dx for r in self.records],
                "dy": [r.translation.dy for r in self.records],
                "rotation_deg": [math.degrees(r.rotation) for r in self.records],
                "translated": [r.translated for r in self.records],
                "rotated": [r.rotated for r in self.records],
                "error": [r.error for r in self.records],
            }
        )


class SeriesRegistration:
    def __init__(
        self,
        params: RegistrationParameters,
        callbacks: ProgressCallbacks = ProgressCallbacks.no_op(),
        backend: Optional[FFTBackend] = None,
        resampler: Optional[ImageResampler] = None,
    ):
        self.params = params
        self.callbacks = callbacks
        self.backend = backend or create_fft_backend(params.engine)
        self.resampler = resampler or SkimageResampler()
        self.tqdm_class = tqdm

    def _frame_range(self, num_frames: int) -> range:
        to_frame = self.params.to_frame if self.params.to_frame is not None else num_frames
        if to_frame > num_frames:
            raise ValueError(f"to_frame {to_frame} is past the end of a {num_frames}-frame series")
        if self.params.reference_frame >= num_frames:
            raise ValueError(
                f"Reference frame {self.params.reference_frame} is out of range for "
                f"a {num_frames}-frame series"
            )
        return range(self.params.from_frame, to_frame)

    def _reduce(self, image: Image) -> Image:
        """Crop to the region used for estimation."""
        roi = self.params.roi_rect
        if roi is None:
            return image
        return self.resampler.crop(image, roi)

    def _translation(self, reduced: Image, reduced_reference: Image) -> DisplacementVector:
        return estimate_average_translation(
            reduced, reduced_reference, self.params.reference_channel, self.backend
        )

    def _is_significant_translation(self, translation: DisplacementVector) -> bool:
        return translation.length_squared() > self.params.translation_threshold

    def _translate(self, image: Image, translation: DisplacementVector) -> Image:
        return apply_translation(
            image,
            ChannelSelection.ALL,
            translation,
            preserve_size=self.params.preserve_image_size,
            resampler=self.resampler,
        )

    def register_frame(
        self, frame_idx: int, image: Image, reduced_reference: Image
    ) -> tuple[Image, FrameRegistration]:
        """Correct one frame against the (already reduced) reference.

        Raises:
            DimensionMismatchError: If the frame cannot be compared with the reference
        """
        params = self.params
        record = FrameRegistration(frame=frame_idx)
        work = image

        applied: Optional[DisplacementVector] = None
        if params.correct_translation:
            translation = self._translation(self._reduce(work), reduced_reference)
            if self._is_significant_translation(translation):
                work = self._translate(work, translation)
                applied = translation
                record.translation = translation
                record.translated = True
                logger.info(
                    f"Frame {frame_idx}: applied translation correction "
                    f"({translation.dx}, {translation.dy})"
                )

        if params.correct_rotation:
            angle = estimate_average_rotation(
                self._reduce(work),
                reduced_reference,
                params.reference_channel,
                hint=applied,
                theta_size=params.log_polar_theta_size,
                rho_size=params.log_polar_rho_size,
                search_full=params.rotation_search_full,
                backend=self.backend,
                resampler=self.resampler,
            )
            if abs(angle) > params.rotation_threshold:
                work = apply_rotation(
                    work,
                    ChannelSelection.ALL,
                    angle,
                    preserve_size=params.preserve_image_size,
                    resampler=self.resampler,
                )
                record.rotation = angle
                record.rotated = True
                logger.info(
                    f"Frame {frame_idx}: applied rotation correction {math.degrees(angle):.3f} degrees"
                )

                reduced = self._reduce(work)
                # a grown canvas cannot be compared pixel to pixel any more
                if params.correct_translation and reduced.bounds == reduced_reference.bounds:
                    # rotating about the image centre leaves a residual shift
                    residual = self._translation(reduced, reduced_reference)
                    if self._is_significant_translation(residual):
                        work = self._translate(work, residual)
                        record.translation = record.translation + residual
                        record.translated = True
                        logger.debug(
                            f"Frame {frame_idx}: applied residual translation "
                            f"({residual.dx}, {residual.dy})"
                        )

        return work, record

    def run(self, frames: Sequence[Image]) -> SeriesRegistrationResult:
        frame_range = self._frame_range(len(frames))
        reduced_reference = self._reduce(frames[self.params.reference_frame])
        result = SeriesRegistrationResult(frames=list(frames))

        logger.info(
            f"Registering frames {frame_range.start} to {frame_range.stop - 1} "
            f"against frame {self.params.reference_frame}"
        )
        for count, frame_idx in enumerate(
            self.tqdm_class(frame_range, desc="Registering frames"), start=1
        ):
            if self.callbacks.should_stop():
                logger.info(f"Registration stopped before frame {frame_idx}")
                break

            try:
                corrected, record = self.register_frame(
                    frame_idx, frames[frame_idx], reduced_reference
                )
            except DimensionMismatchError as e:
                logger.warning(f"Frame {frame_idx} processing failed: {e}")
                corrected, record = frames[frame_idx], FrameRegistration(frame_idx, error=str(e))

            result.frames[frame_idx] = corrected
            result.records.append(record)
            self.callbacks.frame_registered(record)
            self.callbacks.update_progress(count, len(frame_range))

        logger.info(
            f"Corrected {result.frames_corrected} of {result.frames_processed} frames "
            f"({result.total_translations} translations, {result.total_rotations} rotations)"
        )
        return result
