"""
Tests for the recut CLI.

The FFmpeg engine is swapped for the in-memory engine; ffprobe is
bypassed with --duration or mocked.
"""

from unittest.mock import patch

import pytest

from conftest import FakeEngine
from recut.cli import (
    EXIT_EXECUTION_ERROR,
    EXIT_SUCCESS,
    EXIT_SYSTEM_ERROR,
    EXIT_VALIDATION_ERROR,
    main,
)
from recut.metadata import FFProbeNotFoundError
from recut.persistence import PreferenceStore


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "prefs.db")
    monkeypatch.setenv("RECUT_DB_PATH", path)
    return path


@pytest.fixture
def engine():
    return FakeEngine(output=b"encoded")


@pytest.fixture
def patched_engine(engine):
    with patch("recut.cli.FFmpegEngine", return_value=engine):
        yield engine


class TestRender:

    def test_writes_prefixed_output(self, db_path, source_file, patched_engine, capsys):
        code = main(["render", str(source_file), "--duration", "60", "--trim", "25", "75", "--flip-h"])

        assert code == EXIT_SUCCESS
        output = source_file.parent / "edited_holiday.mp4"
        assert output.read_bytes() == b"encoded"
        assert "Trim: 00:15 - 00:45" in capsys.readouterr().out
        assert patched_engine.executed[0][:8] == [
            "-i", "input.mp4", "-ss", "15", "-t", "30", "-vf", "hflip",
        ]
        assert patched_engine.closed

    def test_output_dir(self, db_path, source_file, patched_engine, tmp_path):
        out_dir = tmp_path / "renders"
        code = main(["render", str(source_file), "--duration", "5", "--output-dir", str(out_dir)])

        assert code == EXIT_SUCCESS
        assert (out_dir / "edited_holiday.mp4").exists()

    def test_saves_and_reuses_preferences(self, db_path, source_file, patched_engine):
        main(["render", str(source_file), "--duration", "5", "--rotate", "90", "--audio", "mute"])

        prefs = PreferenceStore(db_path).load()
        assert prefs.rotation == 90
        assert prefs.audio_mode.value == "mute"

        patched_engine.executed.clear()
        main(["render", str(source_file), "--duration", "5"])
        argv = patched_engine.executed[0]
        assert "transpose=1" in argv
        assert "-an" in argv

    def test_no_preferences(self, db_path, source_file, patched_engine):
        main(["render", str(source_file), "--duration", "5", "--rotate", "90"])
        patched_engine.executed.clear()

        main(["render", str(source_file), "--duration", "5", "--no-preferences"])

        assert "-vf" not in patched_engine.executed[0]

    def test_missing_source(self, db_path, tmp_path, patched_engine):
        assert main(["render", str(tmp_path / "gone.mp4"), "--duration", "5"]) == EXIT_SYSTEM_ERROR

    def test_invalid_crop(self, db_path, source_file, patched_engine):
        code = main(["render", str(source_file), "--duration", "5", "--crop", "5", "50"])
        assert code == EXIT_VALIDATION_ERROR
        assert patched_engine.executed == []

    def test_non_video_source(self, db_path, tmp_path, patched_engine):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        assert main(["render", str(notes), "--duration", "5"]) == EXIT_VALIDATION_ERROR

    def test_render_failure(self, db_path, source_file, engine, patched_engine):
        engine.fail_execute = "Conversion failed!"
        code = main(["render", str(source_file), "--duration", "5"])

        assert code == EXIT_EXECUTION_ERROR
        assert not (source_file.parent / "edited_holiday.mp4").exists()

    def test_engine_load_failure(self, db_path, source_file, engine, patched_engine):
        engine.fail_load = "ffmpeg missing"
        assert main(["render", str(source_file), "--duration", "5"]) == EXIT_SYSTEM_ERROR

    def test_probe_failure(self, db_path, source_file, patched_engine):
        with patch("recut.cli.probe_duration", side_effect=FFProbeNotFoundError()):
            assert main(["render", str(source_file)]) == EXIT_SYSTEM_ERROR


class TestProbe:

    def test_prints_duration(self, db_path, source_file, capsys):
        with patch("recut.cli.probe_duration", return_value=61.5):
            assert main(["probe", str(source_file)]) == EXIT_SUCCESS
        assert capsys.readouterr().out.strip() == "61.500"

    def test_probe_error(self, db_path, source_file):
        with patch("recut.cli.probe_duration", side_effect=FFProbeNotFoundError()):
            assert main(["probe", str(source_file)]) == EXIT_SYSTEM_ERROR
