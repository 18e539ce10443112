"""
Render endpoints.

HTTP adapter over the edit model, compiler, session and runner.
Sources are local paths, read by the server.

Error mapping:
- 400: invalid edit, unsupported source, compile before metadata
- 404: source file missing
- 409: a render is already running (preferences are left unchanged) or reload not allowed
- 503: engine session not ready or faulted
- 500: render failed (workspace already cleaned)
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from ..edits.errors import EditError
from ..edits.models import AspectTarget, AudioMode
from ..edits.state import EditState
from ..execution.compiler import compile_command
from ..execution.errors import (
    BusyError,
    EngineLoadFailedError,
    InvalidStateError,
    RenderFailedError,
    WorkspaceCleanupError,
)
from ..execution.naming import output_filename
from ..execution.runner import MSG_PREPARING
from ..metadata.errors import MetadataError
from ..metadata.probe import probe_duration
from ..persistence.errors import PersistenceError

logger = logging.getLogger(__name__)


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "_").replace('"', "_")
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename, safe="")}'


router = APIRouter(tags=["render"])


class CropRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    width_pct: float = 100.0
    height_pct: float = 100.0


class EditsRequest(BaseModel):
    """Edit settings for one render. Unset fields keep their defaults."""

    model_config = ConfigDict(extra="forbid")

    trim_start_pct: float = 0.0
    trim_end_pct: float = 100.0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    rotation: int = 0
    crop: CropRequest = Field(default_factory=CropRequest)
    aspect_target: AspectTarget = AspectTarget.ORIGINAL
    audio_mode: AudioMode = AudioMode.STEREO
    caption_text: str = ""


class RenderRequest(BaseModel):
    """Request body for POST /render."""

    model_config = ConfigDict(extra="forbid")

    source_path: str
    duration_seconds: Optional[float] = Field(default=None, ge=0.0)
    edits: EditsRequest = Field(default_factory=EditsRequest)


def _apply_edits(state: EditState, edits: EditsRequest) -> None:
    state.set_flip(horizontal=edits.flip_horizontal, vertical=edits.flip_vertical)
    state.set_rotation(edits.rotation)
    state.set_crop(edits.crop.width_pct, edits.crop.height_pct)
    state.set_aspect_target(edits.aspect_target)
    state.set_audio_mode(edits.audio_mode)
    state.set_caption(edits.caption_text)
    state.set_trim(edits.trim_start_pct, edits.trim_end_pct)


# ============================================================================
# SESSION
# ============================================================================

@router.get("/session")
async def get_session(request: Request):
    """Engine session state and busy flag."""
    return request.app.state.session.status().to_dict()


@router.post("/session/reload")
async def reload_session(request: Request):
    """Manually reload a faulted engine session."""
    session = request.app.state.session
    try:
        await session.reload()
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except EngineLoadFailedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return session.status().to_dict()


# ============================================================================
# PREFERENCES
# ============================================================================

@router.get("/preferences")
async def get_preferences(request: Request):
    """Stored preferences (defaults for anything missing)."""
    return request.app.state.preference_store.load().to_record()


# ============================================================================
# RENDER
# ============================================================================

@router.get("/render/status")
async def render_status(request: Request):
    """The in-flight job, or idle."""
    job = request.app.state.runner.current_job
    if job is None:
        return {"status": "idle"}
    return job.model_dump(mode="json", exclude={"output_bytes"})


@router.post("/render")
async def render(body: RenderRequest, request: Request):
    """
    Render one source with the given edits.

    Preferences are saved once the job holds the engine, so a rejected
    (busy) request leaves them untouched. The encoded file is returned
    as an attachment named after the source with a prefix.
    """
    app_state = request.app.state
    session = app_state.session
    runner = app_state.runner
    settings = app_state.settings

    if not session.is_ready:
        status = session.status()
        detail = f"Video processing engine is not ready (state: {status.state.value})"
        if status.failure_reason:
            detail += f": {status.failure_reason}"
        raise HTTPException(status_code=503, detail=detail)

    source = Path(body.source_path)
    if not source.is_file():
        raise HTTPException(status_code=404, detail=f"Source file not found: {body.source_path}")

    state = EditState()
    try:
        state.open_source(source.name)
        _apply_edits(state, body.edits)
    except EditError as e:
        raise HTTPException(status_code=400, detail=str(e))

    duration = body.duration_seconds
    if duration is None:
        try:
            duration = await asyncio.to_thread(probe_duration, str(source), settings.ffprobe_path)
        except MetadataError as e:
            if not state.snapshot().is_full_range:
                raise HTTPException(status_code=400, detail=str(e))
            logger.warning(f"[Render] Duration unknown, rendering full range: {e}")
            duration = 0.0

    try:
        # Metadata load re-opens the trim end; re-apply the requested window
        state.set_source_duration(duration)
        state.set_trim(body.edits.trim_start_pct, body.edits.trim_end_pct)
        edits = state.snapshot()
        command = compile_command(edits, edits.source_duration_seconds)
    except (EditError, InvalidStateError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    def save_preferences(message: str) -> None:
        if message != MSG_PREPARING:
            return
        try:
            app_state.preference_store.save(state.to_preferences())
        except PersistenceError as e:
            logger.error(f"[Render] Preferences not saved: {e}")

    input_bytes = await asyncio.to_thread(source.read_bytes)

    try:
        job = await runner.run(command, input_bytes, on_status=save_preferences)
    except BusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except (RenderFailedError, WorkspaceCleanupError) as e:
        raise HTTPException(status_code=500, detail=str(e))

    filename = output_filename(source.name, settings.output_prefix)
    return Response(
        content=job.output_bytes,
        media_type="video/mp4",
        headers={"Content-Disposition": _content_disposition(filename)},
    )
