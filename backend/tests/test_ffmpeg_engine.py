"""
Tests for the FFmpeg engine boundary.

Subprocesses are mocked except for cancellation, which runs a stand-in
shell script. The workspace is a real directory under tmp_path.
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from recut.execution.errors import (
    EngineExecutionError,
    EngineLoadFailedError,
    InvalidStateError,
    WorkspaceFileNotFoundError,
)
from recut.execution.ffmpeg import FFmpegEngine


def version_process(returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(b"ffmpeg version 6.1\n", b""))
    return process


def execute_process(stderr: bytes, exit_code: int) -> MagicMock:
    stream = asyncio.StreamReader()
    stream.feed_data(stderr)
    stream.feed_eof()

    process = MagicMock()
    process.pid = 4242
    process.stderr = stream
    process.wait = AsyncMock(return_value=exit_code)
    return process


async def loaded_engine(tmp_path) -> FFmpegEngine:
    engine = FFmpegEngine(workspace_root=str(tmp_path))
    with patch.object(FFmpegEngine, "_find_ffmpeg", return_value="/usr/bin/ffmpeg"), \
         patch("recut.execution.ffmpeg.asyncio.create_subprocess_exec",
               new=AsyncMock(return_value=version_process())):
        await engine.load()
    return engine


class TestLoad:

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path):
        engine = FFmpegEngine(ffmpeg_path="/nonexistent/ffmpeg", workspace_root=str(tmp_path))
        with patch.object(FFmpegEngine, "_find_ffmpeg", return_value=None):
            with pytest.raises(EngineLoadFailedError) as exc_info:
                await engine.load()
        assert "not installed" in str(exc_info.value)
        assert not engine.loaded

    @pytest.mark.asyncio
    async def test_version_check_failure(self, tmp_path):
        engine = FFmpegEngine(workspace_root=str(tmp_path))
        with patch.object(FFmpegEngine, "_find_ffmpeg", return_value="/usr/bin/ffmpeg"), \
             patch("recut.execution.ffmpeg.asyncio.create_subprocess_exec",
                   new=AsyncMock(return_value=version_process(returncode=1))):
            with pytest.raises(EngineLoadFailedError):
                await engine.load()
        assert not engine.loaded

    @pytest.mark.asyncio
    async def test_load_creates_workspace(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        try:
            assert engine.loaded
            assert engine.workspace_dir.parent == tmp_path
            assert engine.workspace_dir.name.startswith("recut-")
        finally:
            engine.close()
        assert not engine.loaded


class TestWorkspace:

    @pytest.mark.asyncio
    async def test_write_read_delete(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        try:
            await engine.write_workspace_file("input.mp4", b"data")
            assert engine.list_workspace() == ["input.mp4"]
            assert await engine.read_workspace_file("input.mp4") == b"data"

            await engine.delete_workspace_file("input.mp4")
            assert engine.list_workspace() == []
        finally:
            engine.close()

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        try:
            with pytest.raises(WorkspaceFileNotFoundError):
                await engine.read_workspace_file("output.mp4")
            with pytest.raises(WorkspaceFileNotFoundError):
                await engine.delete_workspace_file("output.mp4")
        finally:
            engine.close()

    @pytest.mark.asyncio
    async def test_failed_write_leaves_nothing(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        try:
            with patch("recut.execution.ffmpeg.os.replace", side_effect=OSError("No space left on device")):
                with pytest.raises(OSError):
                    await engine.write_workspace_file("input.mp4", b"data")
            assert engine.list_workspace() == []
        finally:
            engine.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "..", "../escape.mp4", "dir/file.mp4", "a\\b"])
    async def test_names_must_be_flat(self, tmp_path, name):
        engine = await loaded_engine(tmp_path)
        try:
            with pytest.raises(ValueError):
                await engine.write_workspace_file(name, b"x")
        finally:
            engine.close()

    @pytest.mark.asyncio
    async def test_requires_load(self):
        with pytest.raises(InvalidStateError):
            await FFmpegEngine().write_workspace_file("input.mp4", b"x")


class TestExecute:

    @pytest.mark.asyncio
    async def test_progress_and_logs(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        progress, logs = [], []
        engine.subscribe_progress(progress.append)
        engine.subscribe_log(logs.append)

        stderr = (
            b"Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':\n"
            b"  Duration: 00:01:00.00, start: 0.000000, bitrate: 1205 kb/s\n"
            b"frame=   10 fps=0.0 q=28.0 size=0kB time=00:00:05.00 bitrate=N/A\r"
            b"frame=   20 fps= 20 q=28.0 size=0kB time=00:00:15.00 bitrate=N/A\r"
        )
        mock_exec = AsyncMock(return_value=execute_process(stderr, 0))
        try:
            with patch("recut.execution.ffmpeg.asyncio.create_subprocess_exec", new=mock_exec):
                await engine.execute(["-i", "input.mp4", "-ss", "30", "-t", "20", "output.mp4"])
        finally:
            engine.close()

        cmd = mock_exec.call_args[0]
        assert cmd[:4] == ("/usr/bin/ffmpeg", "-hide_banner", "-nostdin", "-y")
        assert cmd[-1] == "output.mp4"
        assert progress == [pytest.approx(0.25), pytest.approx(0.75)]
        assert len(logs) == 4

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path):
        engine = await loaded_engine(tmp_path)
        stderr = b"[AVFilterGraph] No such filter: 'bogus'\nError opening filters!\n"
        try:
            with patch("recut.execution.ffmpeg.asyncio.create_subprocess_exec",
                       new=AsyncMock(return_value=execute_process(stderr, 1))):
                with pytest.raises(EngineExecutionError) as exc_info:
                    await engine.execute(["-i", "input.mp4", "output.mp4"])
        finally:
            engine.close()

        assert exc_info.value.exit_code == 1
        assert "No such filter" in exc_info.value.diagnostic


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_kills_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        script = tmp_path / "ffmpeg"
        script.write_text(
            "#!/bin/sh\n"
            'if [ "$1" = "-version" ]; then echo "ffmpeg version fake"; exit 0; fi\n'
            f'echo $$ > "{pid_file}"\n'
            "exec sleep 30\n"
        )
        script.chmod(0o755)

        engine = FFmpegEngine(ffmpeg_path=str(script), workspace_root=str(tmp_path))
        await engine.load()
        try:
            task = asyncio.create_task(engine.execute(["-i", "input.mp4", "output.mp4"]))
            for _ in range(200):
                if pid_file.exists() and pid_file.read_text().strip():
                    break
                await asyncio.sleep(0.05)
            pid = int(pid_file.read_text().strip())

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            engine.close()

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)
