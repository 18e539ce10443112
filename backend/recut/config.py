"""
Runtime configuration.

All settings come from environment variables with safe defaults.
Overrides are optional; a bare environment works for local use.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Environment variable overrides
ENV_FFMPEG_PATH = "RECUT_FFMPEG_PATH"
ENV_FFPROBE_PATH = "RECUT_FFPROBE_PATH"
ENV_DB_PATH = "RECUT_DB_PATH"
ENV_WORKSPACE_ROOT = "RECUT_WORKSPACE_ROOT"
ENV_LOG_LEVEL = "RECUT_LOG_LEVEL"
ENV_OUTPUT_PREFIX = "RECUT_OUTPUT_PREFIX"

DEFAULT_OUTPUT_PREFIX = "edited_"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


@dataclass(frozen=True)
class RecutSettings:
    """
    Immutable runtime settings.

    ffmpeg_path/ffprobe_path of None means "discover on PATH".
    """

    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    db_path: str = str(Path.cwd() / "recut.db")
    workspace_root: str = tempfile.gettempdir()
    log_level: str = DEFAULT_LOG_LEVEL
    output_prefix: str = DEFAULT_OUTPUT_PREFIX


def load_settings(environ: Optional[dict] = None) -> RecutSettings:
    """
    Build settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        RecutSettings with overrides applied
    """
    env = os.environ if environ is None else environ

    return RecutSettings(
        ffmpeg_path=env.get(ENV_FFMPEG_PATH) or None,
        ffprobe_path=env.get(ENV_FFPROBE_PATH) or None,
        db_path=env.get(ENV_DB_PATH) or str(Path.cwd() / "recut.db"),
        workspace_root=env.get(ENV_WORKSPACE_ROOT) or tempfile.gettempdir(),
        log_level=(env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        output_prefix=env.get(ENV_OUTPUT_PREFIX, DEFAULT_OUTPUT_PREFIX),
    )
