"""
Tests for ffprobe duration discovery and output naming.

ffprobe is mocked; no binaries are required.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from recut.execution.naming import output_filename, output_path
from recut.metadata import (
    FFProbeNotFoundError,
    MetadataExtractionError,
    probe_duration,
)


def ffprobe_result(payload: dict) -> MagicMock:
    result = MagicMock()
    result.stdout = json.dumps(payload)
    return result


class TestProbeDuration:

    @patch("recut.metadata.probe.shutil.which", return_value="/usr/bin/ffprobe")
    @patch("recut.metadata.probe.subprocess.run")
    def test_format_duration(self, mock_run, mock_which, source_file):
        mock_run.return_value = ffprobe_result({"format": {"duration": "61.250000"}})

        assert probe_duration(str(source_file)) == 61.25

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "/usr/bin/ffprobe"
        assert cmd[-1] == str(source_file)

    @patch("recut.metadata.probe.shutil.which", return_value="/usr/bin/ffprobe")
    @patch("recut.metadata.probe.subprocess.run")
    def test_stream_duration_fallback(self, mock_run, mock_which, source_file):
        mock_run.return_value = ffprobe_result({
            "format": {},
            "streams": [
                {"codec_type": "audio", "duration": "99.0"},
                {"codec_type": "video", "duration": "12.5"},
            ],
        })

        assert probe_duration(str(source_file)) == 12.5

    @patch("recut.metadata.probe.shutil.which", return_value="/usr/bin/ffprobe")
    @patch("recut.metadata.probe.subprocess.run")
    def test_no_duration(self, mock_run, mock_which, source_file):
        mock_run.return_value = ffprobe_result({"format": {"duration": "N/A"}, "streams": []})

        with pytest.raises(MetadataExtractionError):
            probe_duration(str(source_file))

    @patch("recut.metadata.probe.shutil.which", return_value="/usr/bin/ffprobe")
    @patch("recut.metadata.probe.subprocess.run")
    def test_ffprobe_failure(self, mock_run, mock_which, source_file):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["ffprobe"])

        with pytest.raises(MetadataExtractionError) as exc_info:
            probe_duration(str(source_file))
        assert "exit code 1" in str(exc_info.value)

    @patch("recut.metadata.probe.shutil.which", return_value=None)
    def test_ffprobe_missing(self, mock_which, source_file):
        with pytest.raises(FFProbeNotFoundError):
            probe_duration(str(source_file))

    @patch("recut.metadata.probe.shutil.which", return_value="/usr/bin/ffprobe")
    def test_missing_file(self, mock_which, tmp_path):
        with pytest.raises(MetadataExtractionError):
            probe_duration(str(tmp_path / "gone.mp4"))


class TestOutputNaming:

    def test_prefix(self):
        assert output_filename("holiday.mp4") == "edited_holiday.mp4"

    def test_directory_stripped(self):
        assert output_filename("/media/clips/holiday.mov") == "edited_holiday.mov"

    def test_custom_prefix(self):
        assert output_filename("a.mp4", prefix="cut-") == "cut-a.mp4"

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            output_filename("")

    def test_output_path_defaults_to_source_dir(self):
        assert output_path("/media/holiday.mp4") == Path("/media/edited_holiday.mp4")

    def test_output_path_override(self, tmp_path):
        assert output_path("/media/holiday.mp4", tmp_path) == tmp_path / "edited_holiday.mp4"
