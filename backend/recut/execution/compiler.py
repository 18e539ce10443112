"""
Edit-to-command compiler.

Pure function: EditModel + source duration -> Command.
No I/O, no clock, no randomness. Identical inputs always produce
identical token order.

Filter stage order is fixed and significant:
1. Flip (horizontal before vertical)
2. Rotation (180 is two transposes, never a dedicated operator)
3. Centered crop
4. Aspect normalization (scale, then symmetric pad)
5. Caption burn-in (requires the staged SRT auxiliary file)
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..edits.models import AspectTarget, AudioMode, EditModel, Rotation
from .captions import build_caption_srt, caption_filter
from .command import CAPTION_FILE_NAME, Command
from .errors import InvalidStateError

logger = logging.getLogger(__name__)


# Rotation -> transpose stages (transpose=1 is 90 clockwise, transpose=2 is 90 counter-clockwise)
ROTATION_STAGES: Dict[Rotation, Tuple[str, ...]] = {
    Rotation.NONE: (),
    Rotation.CW_90: ("transpose=1",),
    Rotation.CW_180: ("transpose=1", "transpose=1"),
    Rotation.CW_270: ("transpose=2",),
}

# Aspect target -> output canvas (width, height)
ASPECT_CANVAS: Dict[AspectTarget, Tuple[int, int]] = {
    AspectTarget.R16X9: (1920, 1080),
    AspectTarget.R9X16: (1080, 1920),
    AspectTarget.R1X1: (1080, 1080),
    AspectTarget.R4X3: (1440, 1080),
}

# Fixed encode settings: one quality tier, one speed preset
VIDEO_CODEC_ARGS: Tuple[str, ...] = ("-c:v", "libx264", "-preset", "fast", "-crf", "22")
AUDIO_CODEC_ARGS: Tuple[str, ...] = ("-c:a", "aac", "-b:a", "128k")
MUTE_ARGS: Tuple[str, ...] = ("-an",)
MONO_ARGS: Tuple[str, ...] = ("-ac", "1")


def format_number(value: float) -> str:
    """
    Render a number for an argument token.

    Integral values print without a fractional part (15, not 15.0);
    others use the shortest round-trip form (15.5, 0.8).
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def flip_stages(edits: EditModel) -> List[str]:
    stages: List[str] = []
    if edits.flip_horizontal:
        stages.append("hflip")
    if edits.flip_vertical:
        stages.append("vflip")
    return stages


def rotation_stages(edits: EditModel) -> List[str]:
    return list(ROTATION_STAGES[Rotation(edits.rotation)])


def crop_stage(edits: EditModel) -> Optional[str]:
    """Centered crop as a fraction of input size. None when full frame."""
    crop = edits.crop
    if crop.is_full_frame:
        return None
    width_fraction = format_number(crop.width_pct / 100)
    height_fraction = format_number(crop.height_pct / 100)
    return f"crop=iw*{width_fraction}:ih*{height_fraction}"


def aspect_stage(edits: EditModel) -> Optional[str]:
    """
    Scale to fit the target canvas preserving source aspect, then pad
    symmetrically. None for the original aspect.
    """
    canvas = ASPECT_CANVAS.get(AspectTarget(edits.aspect_target))
    if canvas is None:
        return None
    width, height = canvas
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
    )


def trim_args(edits: EditModel, source_duration_seconds: float) -> List[str]:
    """
    Seek/duration tokens.

    Start is emitted only when it is past zero; duration only when the
    trimmed end falls before the full duration. The two are independent.

    Raises:
        InvalidStateError: If the duration is unknown and trimming is non-default.
    """
    if source_duration_seconds < 0:
        raise InvalidStateError(
            f"Source duration must be >= 0, got {source_duration_seconds}"
        )

    if source_duration_seconds == 0:
        if not edits.is_full_range:
            raise InvalidStateError(
                "Source duration is not known yet; cannot compile a trimmed render "
                "before media metadata is loaded"
            )
        return []

    start_seconds = edits.trim_start_pct / 100 * source_duration_seconds
    end_seconds = edits.trim_end_pct / 100 * source_duration_seconds
    duration_seconds = (edits.trim_end_pct - edits.trim_start_pct) / 100 * source_duration_seconds

    args: List[str] = []
    if start_seconds > 0:
        args.extend(["-ss", format_number(start_seconds)])
    if end_seconds < source_duration_seconds:
        args.extend(["-t", format_number(duration_seconds)])
    return args


def codec_args(edits: EditModel) -> List[str]:
    """
    Audio flags followed by codec/quality tokens.

    Mute drops audio and suppresses every audio-codec token.
    """
    mode = AudioMode(edits.audio_mode)
    args: List[str] = []

    if mode == AudioMode.MUTE:
        args.extend(MUTE_ARGS)
    elif mode == AudioMode.MONO:
        args.extend(MONO_ARGS)

    args.extend(VIDEO_CODEC_ARGS)

    if mode != AudioMode.MUTE:
        args.extend(AUDIO_CODEC_ARGS)

    return args


def compile_command(edits: EditModel, source_duration_seconds: float) -> Command:
    """
    Compile edits into an engine command.

    Args:
        edits: Edit snapshot
        source_duration_seconds: Source duration (0 if metadata not yet read)

    Returns:
        Command with filter stages, encoder tokens and auxiliary files

    Raises:
        InvalidStateError: If called with an unknown duration and a
            non-default trim window
    """
    trim = trim_args(edits, source_duration_seconds)

    stages: List[str] = []
    stages.extend(flip_stages(edits))
    stages.extend(rotation_stages(edits))

    crop = crop_stage(edits)
    if crop:
        stages.append(crop)

    aspect = aspect_stage(edits)
    if aspect:
        stages.append(aspect)

    auxiliary_files: Dict[str, bytes] = {}
    if edits.has_caption:
        # The SRT must exist before the filter that references it runs
        auxiliary_files[CAPTION_FILE_NAME] = build_caption_srt(edits.caption_text)
        stages.append(caption_filter(CAPTION_FILE_NAME))

    command = Command(
        filter_stages=tuple(stages),
        trim_args=tuple(trim),
        codec_args=tuple(codec_args(edits)),
        auxiliary_files=auxiliary_files,
    )

    logger.debug(f"[Compiler] {len(stages)} filter stage(s): {command.command_line()}")
    return command
