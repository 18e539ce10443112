"""
Output naming.

The rendered file is delivered under the original filename with a prefix.
"""

from pathlib import Path
from typing import Optional, Union

from ..config import DEFAULT_OUTPUT_PREFIX


def output_filename(source_name: str, prefix: str = DEFAULT_OUTPUT_PREFIX) -> str:
    """
    Derive the download filename for a render.

    Only the final path component of source_name is used.

    Example:
        >>> output_filename("/media/holiday.mp4")
        'edited_holiday.mp4'
    """
    name = Path(source_name).name
    if not name:
        raise ValueError(f"Source name has no filename component: {source_name!r}")
    return f"{prefix}{name}"


def output_path(
    source_path: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    prefix: str = DEFAULT_OUTPUT_PREFIX,
) -> Path:
    """
    Resolve where a rendered file is written on disk.

    Defaults to the source file's directory.
    """
    source = Path(source_path)
    directory = Path(output_dir) if output_dir else source.parent
    return directory / output_filename(source.name, prefix)
