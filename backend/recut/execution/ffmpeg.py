"""
FFmpeg engine.

Local ffmpeg binary behind the EngineBoundary interface.

Design rules:
- The workspace is a private temp directory created at load time
- Workspace names are flat (no separators, no parent references)
- One subprocess per execute(), run with the workspace as cwd
- stderr is streamed: every line goes to log subscribers, time= readings
  become fractional progress
- Non-zero exit = EngineExecutionError carrying the stderr tail
- A cancelled or failed execute() kills the process before returning
- Workspace writes are atomic (temp file, then rename)
"""

import asyncio
import logging
import os
import shutil
import tempfile
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Sequence

from .base import EngineBoundary
from .errors import (
    EngineExecutionError,
    EngineLoadFailedError,
    InvalidStateError,
    WorkspaceFileNotFoundError,
)
from .progress import ProgressInfo, ProgressParser, expected_output_duration

logger = logging.getLogger(__name__)


# Common install locations, checked after PATH
COMMON_FFMPEG_PATHS = [
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
]

# Leading flags for every invocation
BASE_FLAGS = ["-hide_banner", "-nostdin", "-y"]

# Lines of stderr kept for failure diagnostics
DIAGNOSTIC_TAIL_LINES = 20

STDERR_CHUNK_SIZE = 4096


class FFmpegEngine(EngineBoundary):
    """
    FFmpeg-based engine.

    Args:
        ffmpeg_path: Explicit binary path (skips discovery when valid)
        workspace_root: Parent directory for the private workspace
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        workspace_root: Optional[str] = None,
    ):
        super().__init__()
        self._configured_path = ffmpeg_path
        self._workspace_root = workspace_root
        self._ffmpeg_path: Optional[str] = None
        self._workspace: Optional[Path] = None

    @property
    def name(self) -> str:
        return "FFmpeg"

    @property
    def loaded(self) -> bool:
        return self._ffmpeg_path is not None and self._workspace is not None

    @property
    def ffmpeg_path(self) -> Optional[str]:
        return self._ffmpeg_path

    @property
    def workspace_dir(self) -> Optional[Path]:
        return self._workspace

    def _find_ffmpeg(self, candidates: Sequence[str]) -> Optional[str]:
        """Find an executable ffmpeg binary."""
        for candidate in candidates:
            if not candidate:
                continue
            resolved = shutil.which(candidate) or candidate
            if os.path.isfile(resolved) and os.access(resolved, os.X_OK):
                return resolved

        ffmpeg_path = shutil.which("ffmpeg")
        if ffmpeg_path:
            return ffmpeg_path

        for path in COMMON_FFMPEG_PATHS:
            if os.path.isfile(path) and os.access(path, os.X_OK):
                return path

        return None

    async def load(self, core_asset_locations: Optional[Sequence[str]] = None) -> None:
        """
        Locate and verify ffmpeg, then create the workspace.

        Search order: core_asset_locations, configured path, PATH,
        common install locations.
        """
        candidates: List[str] = list(core_asset_locations or [])
        if self._configured_path:
            candidates.append(self._configured_path)

        ffmpeg_path = self._find_ffmpeg(candidates)
        if not ffmpeg_path:
            raise EngineLoadFailedError("FFmpeg is not installed or not in PATH")

        try:
            process = await asyncio.create_subprocess_exec(
                ffmpeg_path, "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise EngineLoadFailedError(f"Cannot start {ffmpeg_path}: {e}") from e

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip() or f"exit code {process.returncode}"
            raise EngineLoadFailedError(f"{ffmpeg_path} -version failed: {detail}")

        version_line = stdout.decode(errors="replace").splitlines()[:1]
        logger.info(f"[FFmpeg] Using {ffmpeg_path} ({version_line[0] if version_line else 'unknown version'})")

        if self._workspace is None or not self._workspace.is_dir():
            try:
                self._workspace = Path(tempfile.mkdtemp(prefix="recut-", dir=self._workspace_root))
            except OSError as e:
                raise EngineLoadFailedError(f"Cannot create workspace: {e}") from e
            logger.info(f"[FFmpeg] Workspace {self._workspace}")

        self._ffmpeg_path = ffmpeg_path

    def close(self) -> None:
        """Remove the workspace directory."""
        if self._workspace is not None:
            shutil.rmtree(self._workspace, ignore_errors=True)
            logger.info(f"[FFmpeg] Removed workspace {self._workspace}")
        self._workspace = None
        self._ffmpeg_path = None

    # =========================================================================
    # Workspace
    # =========================================================================

    def _workspace_path(self, name: str) -> Path:
        if not self.loaded:
            raise InvalidStateError("FFmpeg engine is not loaded")
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid workspace file name: {name!r}")
        return self._workspace / name

    async def write_workspace_file(self, name: str, data: bytes) -> None:
        path = self._workspace_path(name)
        await asyncio.to_thread(self._write_atomic, path, data)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        """Write through a temp file so a failed write leaves no entry behind."""
        fd, temp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    async def read_workspace_file(self, name: str) -> bytes:
        path = self._workspace_path(name)
        if not path.is_file():
            raise WorkspaceFileNotFoundError(name)
        return await asyncio.to_thread(path.read_bytes)

    async def delete_workspace_file(self, name: str) -> None:
        path = self._workspace_path(name)
        if not path.is_file():
            raise WorkspaceFileNotFoundError(name)
        path.unlink()

    def list_workspace(self) -> List[str]:
        """Names currently present in the workspace."""
        if self._workspace is None:
            return []
        return sorted(p.name for p in self._workspace.iterdir())

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(self, argv: Sequence[str]) -> None:
        """Run ffmpeg with argv inside the workspace."""
        if not self.loaded:
            raise InvalidStateError("FFmpeg engine is not loaded")

        cmd = [self._ffmpeg_path, *BASE_FLAGS, *argv]
        logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")

        duration, start = expected_output_duration(list(argv))
        parser = ProgressParser(
            duration=duration,
            start_offset=start,
            on_progress=self._on_parsed_progress,
        )
        tail: Deque[str] = deque(maxlen=DIAGNOSTIC_TAIL_LINES)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self._workspace),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineExecutionError(f"Cannot start ffmpeg: {e}") from e

        logger.info(f"[FFmpeg] Started PID {process.pid}")

        try:
            async for line in self._read_lines(process.stderr):
                tail.append(line)
                self._emit_log(line)
                parser.parse_line(line)

            exit_code = await process.wait()
        except BaseException:
            await self._kill(process)
            raise

        logger.info(f"[FFmpeg] PID {process.pid} exited with code {exit_code}")

        if exit_code != 0:
            diagnostic = "\n".join(tail) or f"FFmpeg exited with code {exit_code}"
            raise EngineExecutionError(diagnostic, exit_code=exit_code)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill a still-running invocation and reap it."""
        if process.returncode is None:
            logger.warning(f"[FFmpeg] Killing PID {process.pid}")
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()

    def _on_parsed_progress(self, info: ProgressInfo) -> None:
        self._emit_progress(info.fraction)

    @staticmethod
    async def _read_lines(stream: asyncio.StreamReader):
        """
        Yield decoded stderr lines.

        ffmpeg terminates status lines with a carriage return, so both
        \\r and \\n end a line.
        """
        buffer = ""
        while True:
            chunk = await stream.read(STDERR_CHUNK_SIZE)
            if not chunk:
                break
            buffer += chunk.decode(errors="replace").replace("\r", "\n")
            *lines, buffer = buffer.split("\n")
            for line in lines:
                line = line.strip()
                if line:
                    yield line
        if buffer.strip():
            yield buffer.strip()
