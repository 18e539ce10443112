"""
Source duration discovery using ffprobe.

Interactive front ends learn the duration from their media element.
The CLI and HTTP surfaces have none, so they ask ffprobe.
"""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import FFProbeNotFoundError, MetadataExtractionError


def find_ffprobe(configured_path: Optional[str] = None) -> Optional[str]:
    """Locate ffprobe, preferring an explicit path."""
    if configured_path:
        return shutil.which(configured_path) or (
            configured_path if Path(configured_path).is_file() else None
        )
    return shutil.which("ffprobe")


def probe_duration(filepath: str, ffprobe_path: Optional[str] = None) -> float:
    """
    Read the container duration of a media file.

    Args:
        filepath: Path to media file
        ffprobe_path: Optional explicit ffprobe binary

    Returns:
        Duration in seconds (> 0)

    Raises:
        FFProbeNotFoundError: If ffprobe is not available
        MetadataExtractionError: If the file cannot be probed or has no duration
    """
    binary = find_ffprobe(ffprobe_path)
    if binary is None:
        raise FFProbeNotFoundError()

    if not Path(filepath).is_file():
        raise MetadataExtractionError(filepath, "File not found")

    try:
        probe_data = _run_ffprobe(binary, filepath)
    except subprocess.CalledProcessError as e:
        raise MetadataExtractionError(
            filepath, f"ffprobe failed with exit code {e.returncode}"
        ) from e
    except json.JSONDecodeError as e:
        raise MetadataExtractionError(
            filepath, f"Failed to parse ffprobe output: {e}"
        ) from e

    return _extract_duration(filepath, probe_data)


def _run_ffprobe(binary: str, filepath: str) -> Dict[str, Any]:
    """
    Run ffprobe and return parsed JSON output.

    Raises:
        subprocess.CalledProcessError: If ffprobe fails
        json.JSONDecodeError: If output is not valid JSON
    """
    cmd = [
        binary,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        filepath,
    ]

    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=True,
    )

    return json.loads(result.stdout)


def _extract_duration(filepath: str, probe_data: Dict[str, Any]) -> float:
    """Container duration, falling back to the first video stream."""
    candidates = [probe_data.get("format", {}).get("duration")]
    for stream in probe_data.get("streams", []):
        if stream.get("codec_type") == "video":
            candidates.append(stream.get("duration"))

    for value in candidates:
        try:
            duration = float(value)
        except (TypeError, ValueError):
            continue
        if duration > 0:
            return duration

    raise MetadataExtractionError(filepath, "No duration reported")
