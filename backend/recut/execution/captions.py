"""
Burned-in caption support.

One cue, fixed 0-10 second window, fixed style. The SRT file must be
staged in the workspace before the filter that references it runs.
"""

from .command import CAPTION_FILE_NAME


CAPTION_CUE_START = "00:00:00,000"
CAPTION_CUE_END = "00:00:10,000"

# libass force_style: white text, black outline, opaque box
CAPTION_FORCE_STYLE = (
    "FontSize=24,"
    "PrimaryColour=&HFFFFFF&,"
    "OutlineColour=&H000000&,"
    "BorderStyle=3"
)


def build_caption_srt(text: str) -> bytes:
    """
    Build a single-cue SubRip file.

    Args:
        text: Caption text (written verbatim, may span lines)

    Returns:
        UTF-8 encoded SRT content
    """
    content = f"1\n{CAPTION_CUE_START} --> {CAPTION_CUE_END}\n{text}\n"
    return content.encode("utf-8")


def caption_filter(filename: str = CAPTION_FILE_NAME) -> str:
    """Filter stage that burns the staged SRT file into the frame."""
    return f"subtitles={filename}:force_style='{CAPTION_FORCE_STYLE}'"
