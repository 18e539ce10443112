"""
Edit model.

EditModel is an immutable, validated snapshot of every user-chosen edit.
The compiler consumes snapshots only; mutation happens in EditState.

All models use Pydantic for validation.
Unknown fields are rejected.
"""

from enum import Enum, IntEnum
from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


MIN_CROP_PCT = 10.0
MAX_CROP_PCT = 100.0


class Rotation(IntEnum):
    """Clockwise rotation in 90 degree steps. Arbitrary angles are not allowed."""

    NONE = 0
    CW_90 = 90
    CW_180 = 180
    CW_270 = 270


class AspectTarget(str, Enum):
    """Output canvas aspect target."""

    ORIGINAL = "original"
    R16X9 = "16:9"
    R9X16 = "9:16"
    R1X1 = "1:1"
    R4X3 = "4:3"


class AudioMode(str, Enum):
    """Audio channel handling."""

    STEREO = "stereo"
    MONO = "mono"
    MUTE = "mute"


class CropRect(BaseModel):
    """
    Centered crop expressed as a percentage of the input frame.

    100 x 100 means no crop.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    width_pct: float = Field(default=MAX_CROP_PCT, ge=MIN_CROP_PCT, le=MAX_CROP_PCT)
    height_pct: float = Field(default=MAX_CROP_PCT, ge=MIN_CROP_PCT, le=MAX_CROP_PCT)

    @property
    def is_full_frame(self) -> bool:
        return self.width_pct == MAX_CROP_PCT and self.height_pct == MAX_CROP_PCT


class EditModel(BaseModel):
    """
    Snapshot of all edits for one source file.

    Trim bounds are percentages of the source duration, not seconds,
    so they stay valid if the duration is re-read.

    Invariant: trim_start_pct < trim_end_pct.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_duration_seconds: float = Field(default=0.0, ge=0.0)

    trim_start_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    trim_end_pct: float = Field(default=100.0, ge=0.0, le=100.0)

    flip_horizontal: bool = False
    flip_vertical: bool = False

    rotation: Rotation = Rotation.NONE
    crop: CropRect = Field(default_factory=CropRect)
    aspect_target: AspectTarget = AspectTarget.ORIGINAL
    audio_mode: AudioMode = AudioMode.STEREO

    caption_text: str = ""

    @field_validator("rotation", mode="before")
    @classmethod
    def validate_rotation(cls, v):
        """Accept numeric strings and integral floats from form input."""
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            v = int(v)
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return v

    @model_validator(mode="after")
    def validate_trim_window(self) -> "EditModel":
        if self.trim_start_pct >= self.trim_end_pct:
            raise ValueError(
                f"trim_start_pct ({self.trim_start_pct}) must be less than "
                f"trim_end_pct ({self.trim_end_pct})"
            )
        return self

    @property
    def is_full_range(self) -> bool:
        """True when the trim window covers the whole source."""
        return self.trim_start_pct == 0.0 and self.trim_end_pct == 100.0

    @property
    def has_caption(self) -> bool:
        """Whitespace-only captions count as empty."""
        return bool(self.caption_text.strip())

    def trim_window_seconds(self, duration_seconds: float) -> Tuple[float, float]:
        """
        Absolute trim window for a given duration.

        Returns:
            (start_seconds, end_seconds)
        """
        start = self.trim_start_pct / 100.0 * duration_seconds
        end = self.trim_end_pct / 100.0 * duration_seconds
        return start, end


DEFAULT_EDIT_MODEL = EditModel()


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as MM:SS for trim readouts.

    Minutes are not wrapped into hours.
    """
    if seconds is None or seconds < 0:
        seconds = 0.0
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"
