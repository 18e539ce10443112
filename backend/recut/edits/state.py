"""
Mutable edit state for the currently open source file.

EditState is the only writer of edits. Every mutation is validated by
rebuilding an EditModel, so the held snapshot is always consistent.
Readers (the compiler) take snapshots and never see partial updates.

Lifecycle:
- open_source() discards trim bounds and duration for the new file
- set_source_duration() once metadata is known
- UI controls mutate through the setters below
- snapshot() at render time
"""

import logging
import mimetypes
from typing import Any, Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError

from .errors import InvalidEditError, UnsupportedSourceError
from .models import (
    AspectTarget,
    AudioMode,
    EditModel,
    Rotation,
)

if TYPE_CHECKING:
    from ..persistence.preferences import Preferences

logger = logging.getLogger(__name__)


def _first_error(exc: ValidationError) -> tuple[str, str]:
    """Extract (field, message) from the first pydantic error."""
    errors = exc.errors()
    if not errors:
        return "edit", str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "edit"
    return loc, first.get("msg", str(exc))


class EditState:
    """
    Holder of the single EditModel for one open source file.

    Not thread-safe; mutated only by user-facing controls.
    """

    def __init__(self, initial: Optional[EditModel] = None):
        self._model = initial or EditModel()
        self.source_filename: Optional[str] = None

    @property
    def model(self) -> EditModel:
        return self._model

    def snapshot(self) -> EditModel:
        """Return the current immutable snapshot."""
        return self._model

    def _update(self, **changes: Any) -> EditModel:
        """
        Apply changes atomically.

        Raises:
            InvalidEditError: If the resulting model is invalid.
                The held model is left unchanged.
        """
        data: Dict[str, Any] = self._model.model_dump()
        data.update(changes)
        try:
            self._model = EditModel.model_validate(data)
        except ValidationError as e:
            field, reason = _first_error(e)
            raise InvalidEditError(field, reason) from e
        return self._model

    # =========================================================================
    # Source lifecycle
    # =========================================================================

    def open_source(self, filename: str) -> EditModel:
        """
        Start editing a new source file.

        Trim bounds reset to the full range and the duration is forgotten
        until metadata is read. Other edits carry over.

        Raises:
            UnsupportedSourceError: If the filename does not look like video.
        """
        mime_type, _ = mimetypes.guess_type(filename)
        if not mime_type or not mime_type.startswith("video/"):
            raise UnsupportedSourceError(filename, f"MIME type {mime_type or 'unknown'} is not video/*")

        self.source_filename = filename
        logger.info(f"[Edits] Opened source {filename}")
        return self._update(
            source_duration_seconds=0.0,
            trim_start_pct=0.0,
            trim_end_pct=100.0,
        )

    def set_source_duration(self, seconds: float) -> EditModel:
        """Record the source duration once metadata is available."""
        if seconds is None or seconds < 0:
            raise InvalidEditError("source_duration_seconds", f"must be >= 0, got {seconds}")
        # Metadata load re-opens the trim end to the full range
        return self._update(
            source_duration_seconds=float(seconds),
            trim_end_pct=100.0,
        )

    # =========================================================================
    # Edit setters
    # =========================================================================

    def set_trim(self, start_pct: float, end_pct: float) -> EditModel:
        return self._update(trim_start_pct=float(start_pct), trim_end_pct=float(end_pct))

    def set_flip(
        self,
        horizontal: Optional[bool] = None,
        vertical: Optional[bool] = None,
    ) -> EditModel:
        changes: Dict[str, Any] = {}
        if horizontal is not None:
            changes["flip_horizontal"] = bool(horizontal)
        if vertical is not None:
            changes["flip_vertical"] = bool(vertical)
        return self._update(**changes)

    def toggle_flip_horizontal(self) -> EditModel:
        return self._update(flip_horizontal=not self._model.flip_horizontal)

    def toggle_flip_vertical(self) -> EditModel:
        return self._update(flip_vertical=not self._model.flip_vertical)

    def set_rotation(self, degrees: int) -> EditModel:
        """
        Set rotation in 90 degree steps.

        Any multiple of 90 is accepted and normalized into [0, 360),
        so 360 and -90 map to 0 and 270.

        Raises:
            InvalidEditError: If degrees is not a multiple of 90.
        """
        if int(degrees) != degrees or int(degrees) % 90 != 0:
            raise InvalidEditError("rotation", f"must be a multiple of 90, got {degrees}")
        return self._update(rotation=Rotation(int(degrees) % 360))

    def rotate_clockwise(self) -> EditModel:
        """Step rotation by +90 degrees."""
        return self.set_rotation(int(self._model.rotation) + 90)

    def set_crop(self, width_pct: float, height_pct: float) -> EditModel:
        return self._update(crop={"width_pct": float(width_pct), "height_pct": float(height_pct)})

    def set_aspect_target(self, target: "AspectTarget | str") -> EditModel:
        return self._update(aspect_target=target)

    def set_audio_mode(self, mode: "AudioMode | str") -> EditModel:
        return self._update(audio_mode=mode)

    def set_caption(self, text: Optional[str]) -> EditModel:
        return self._update(caption_text=text or "")

    # =========================================================================
    # Preferences
    # =========================================================================

    def apply_preferences(self, prefs: "Preferences") -> EditModel:
        """
        Apply persisted preferences.

        Preferences are already validated and defaulted by the store,
        so they are applied as one update.
        """
        return self._update(
            flip_horizontal=prefs.flip_horizontal,
            flip_vertical=prefs.flip_vertical,
            audio_mode=prefs.audio_mode,
            aspect_target=prefs.aspect_target,
            rotation=prefs.rotation,
            crop=prefs.crop,
            trim_start_pct=prefs.trim_start_pct,
            trim_end_pct=prefs.trim_end_pct,
        )

    def to_preferences(self) -> "Preferences":
        """Extract the persisted subset of the current edits."""
        from ..persistence.preferences import Preferences

        m = self._model
        return Preferences(
            flip_horizontal=m.flip_horizontal,
            flip_vertical=m.flip_vertical,
            audio_mode=m.audio_mode,
            aspect_target=m.aspect_target,
            rotation=m.rotation,
            crop=m.crop,
            trim_start_pct=m.trim_start_pct,
            trim_end_pct=m.trim_end_pct,
        )
