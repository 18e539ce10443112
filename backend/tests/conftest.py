"""
Pytest configuration for the Recut test suite.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

# Keep the module-level app from writing a database into the working tree
os.environ.setdefault(
    "RECUT_DB_PATH", str(Path(tempfile.gettempdir()) / "recut-tests.db")
)

from recut.execution.base import EngineBoundary
from recut.execution.command import OUTPUT_NAME
from recut.execution.errors import (
    EngineExecutionError,
    EngineLoadFailedError,
    WorkspaceFileNotFoundError,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end (requires FFmpeg)"
    )


class FakeEngine(EngineBoundary):
    """
    In-memory engine for tests.

    The workspace is a dict. execute() replays the configured progress
    readings and writes output bytes unless told to fail.
    """

    def __init__(
        self,
        progress: Sequence[float] = (0.1, 0.5, 0.3, 0.9),
        output: bytes = b"rendered",
        fail_load: Optional[str] = None,
        fail_execute: Optional[str] = None,
        fail_write: Optional[str] = None,
        write_output: bool = True,
    ):
        super().__init__()
        self.progress = list(progress)
        self.output = output
        self.fail_load = fail_load
        self.fail_execute = fail_execute
        self.fail_write = fail_write
        self.write_output = write_output

        self.workspace: Dict[str, bytes] = {}
        self.load_calls = 0
        self.writes: List[str] = []
        self.deletes: List[str] = []
        self.executed: List[List[str]] = []
        self.closed = False
        self.gate = None

    @property
    def name(self) -> str:
        return "Fake"

    async def load(self, core_asset_locations=None) -> None:
        self.load_calls += 1
        if self.fail_load:
            raise EngineLoadFailedError(self.fail_load)

    async def write_workspace_file(self, name: str, data: bytes) -> None:
        if self.fail_write and name == self.fail_write:
            raise OSError(f"disk full writing {name}")
        self.workspace[name] = data
        self.writes.append(name)

    async def read_workspace_file(self, name: str) -> bytes:
        if name not in self.workspace:
            raise WorkspaceFileNotFoundError(name)
        return self.workspace[name]

    async def delete_workspace_file(self, name: str) -> None:
        if name not in self.workspace:
            raise WorkspaceFileNotFoundError(name)
        del self.workspace[name]
        self.deletes.append(name)

    async def execute(self, argv: Sequence[str]) -> None:
        self.executed.append(list(argv))
        self._emit_log("fake engine starting")
        if self.gate is not None:
            await self.gate.wait()
        for fraction in self.progress:
            self._emit_progress(fraction)
        if self.fail_execute:
            raise EngineExecutionError(self.fail_execute, exit_code=1)
        if self.write_output:
            self.workspace[OUTPUT_NAME] = self.output

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def source_file(tmp_path):
    """A small file with a video extension."""
    path = tmp_path / "holiday.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42source")
    return path
