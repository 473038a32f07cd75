from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .image import ChannelSelection, Rect


class RegistrationParameters(
    BaseModel,
    use_attribute_docstrings=True,
):
    """Parameters for drift and rotation correction of a frame series."""
    model_config = ConfigDict(validate_assignment=True)

    # Frame range
    from_frame: int = Field(0, ge=0)
    """Index of the first frame to correct."""

    to_frame: Optional[int] = Field(None, ge=0)
    """Index one past the last frame to correct.

    The default, `None`, means up to the end of the series.
    """

    reference_frame: int = Field(0, ge=0)
    """Index of the frame every other frame is registered against."""

    reference_channel: Union[ChannelSelection, int] = 0
    """Channel used to estimate the corrections.

    Accepts a 0-based channel index, or "all" to average the estimates of
    every channel. Corrections are always applied to all channels.
    """

    # Corrections
    correct_translation: bool = True
    """Whether to estimate and correct translational drift."""

    correct_rotation: bool = True
    """Whether to estimate and correct rotation."""

    translation_threshold: float = Field(0.001, ge=0)
    """A translation is applied only if its squared length exceeds this value."""

    rotation_threshold: float = Field(0.001, ge=0)
    """A rotation is applied only if its absolute angle (radians) exceeds this value."""

    preserve_image_size: bool = True
    """Crop corrected frames back to their original size.

    If false, each correction grows the canvas to hold all of the moved content.
    """

    roi: Optional[tuple[int, int, int, int]] = None
    """Region (x, y, width, height) used to estimate corrections.

    Estimation runs on this crop of both the frame and the reference, while the
    corrections are applied to the whole frame. `None` uses the whole image.
    """

    # Estimation
    log_polar_theta_size: int = Field(1080, gt=0)
    """Number of angle buckets of the log-polar transform (sets the angular resolution)."""

    log_polar_rho_size: int = Field(360, gt=0)
    """Number of radius rings of the log-polar transform."""

    rotation_search_full: bool = False
    """Search the whole log-polar correlation for the rotation peak.

    By default only its first half (the inner rings) is searched.
    """

    engine: Literal["numpy", "torch", "cupy"] = "numpy"
    """FFT engine used for the correlations; falls back to numpy if unavailable."""

    @model_validator(mode="after")
    def check_ranges(self) -> "RegistrationParameters":
        if self.to_frame is not None and self.to_frame < self.from_frame:
            raise ValueError(
                f"to_frame must be >= from_frame, got {self.to_frame} < {self.from_frame}"
            )
        if self.roi is not None:
            x, y, width, height = self.roi
            if x < 0 or y < 0 or width <= 0 or height <= 0:
                raise ValueError(f"Invalid region of interest: {self.roi}")
        return self

    @property
    def roi_rect(self) -> Optional[Rect]:
        return Rect(*self.roi) if self.roi is not None else None

    @classmethod
    def from_json_file(cls, json_path: str) -> "RegistrationParameters":
        """Create parameters from a JSON file.

        Args:
            json_path: Path to JSON file containing parameters

        Returns:
            RegistrationParameters: New instance with values from JSON
        """
        with open(json_path) as f:
            return cls.model_validate_json(f.read())

    def to_json_file(self, json_path: str) -> None:
        """Save parameters to a JSON file.

        Args:
            json_path: Path where JSON file should be saved
        """
        with open(json_path, "w") as f:
            f.write(self.model_dump_json(indent=2))
