"""Tests for ffprobe metadata probing."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from voice_to_notion.audio import process_audio
from voice_to_notion.audio.probe import check_ffmpeg, parse_probe_output, probe
from voice_to_notion.utils.errors import (
    AudioFileNotFoundError,
    FFmpegError,
    FFmpegNotFoundError,
)


def _probe_json(**format_overrides) -> str:
    fmt = {"duration": "120.5", "format_name": "mp3", "bit_rate": "128000"}
    fmt.update(format_overrides)
    return json.dumps(
        {
            "format": fmt,
            "streams": [
                {"codec_type": "video"},
                {"codec_type": "audio", "channels": 2, "sample_rate": "48000"},
            ],
        }
    )


@pytest.fixture
def audio_file(tmp_path) -> str:
    path = tmp_path / "note.mp3"
    path.write_bytes(b"\x00" * 2048)
    return str(path)


class TestParseProbeOutput:
    """Tests for parse_probe_output()."""

    def test_parses_format_and_audio_stream(self):
        metadata = parse_probe_output(_probe_json(), file_size=1000)

        assert metadata.duration == 120.5
        assert metadata.format == "mp3"
        assert metadata.bitrate == 128000
        assert metadata.channels == 2
        assert metadata.sample_rate == 48000
        assert metadata.file_size == 1000

    def test_missing_values_use_defaults(self):
        raw = json.dumps({"format": {}, "streams": [{"codec_type": "audio"}]})
        metadata = parse_probe_output(raw, file_size=10)

        assert metadata.duration == 0.0
        assert metadata.format == "unknown"
        assert metadata.bitrate == 0
        assert metadata.channels == 1
        assert metadata.sample_rate == 44100

    def test_no_audio_stream(self):
        raw = json.dumps({"format": {"duration": "1"}, "streams": [{"codec_type": "video"}]})
        with pytest.raises(FFmpegError, match="No audio stream found in file") as exc_info:
            parse_probe_output(raw, file_size=10)
        assert exc_info.value.exit_code == 52

    def test_unparseable_output(self):
        with pytest.raises(FFmpegError):
            parse_probe_output("not json", file_size=10)


class TestCheckFFmpeg:
    """Tests for check_ffmpeg()."""

    def test_returns_path_when_installed(self):
        with patch("voice_to_notion.audio.probe.shutil.which", return_value="/usr/bin/ffprobe"):
            assert check_ffmpeg() == "/usr/bin/ffprobe"

    def test_raises_when_missing(self):
        with patch("voice_to_notion.audio.probe.shutil.which", return_value=None):
            with pytest.raises(FFmpegNotFoundError) as exc_info:
                check_ffmpeg()
        assert exc_info.value.exit_code == 51


class TestProbe:
    """Tests for probe() with ffprobe mocked."""

    async def test_probe_uses_filesystem_size(self, audio_file):
        completed = MagicMock(stdout=_probe_json())
        with (
            patch("voice_to_notion.audio.probe.shutil.which", return_value="/usr/bin/ffprobe"),
            patch("voice_to_notion.audio.probe.subprocess.run", return_value=completed) as run,
        ):
            metadata = await probe(audio_file)

        assert metadata.file_size == 2048
        cmd = run.call_args.args[0]
        assert cmd[0] == "/usr/bin/ffprobe"
        assert "-show_streams" in cmd
        assert cmd[-1] == audio_file

    async def test_ffprobe_failure_includes_stderr(self, audio_file):
        error = subprocess.CalledProcessError(1, ["ffprobe"], stderr="Invalid data found")
        with (
            patch("voice_to_notion.audio.probe.shutil.which", return_value="/usr/bin/ffprobe"),
            patch("voice_to_notion.audio.probe.subprocess.run", side_effect=error),
        ):
            with pytest.raises(FFmpegError, match="Failed to probe audio file: Invalid data found"):
                await probe(audio_file)


class TestProcessAudio:
    """Tests for process_audio() validation order."""

    async def test_ffmpeg_checked_before_file(self, tmp_path):
        with patch("voice_to_notion.audio.probe.shutil.which", return_value=None):
            with pytest.raises(FFmpegNotFoundError):
                await process_audio(str(tmp_path / "missing.mp3"), 1000)

    async def test_missing_file(self, tmp_path):
        with patch("voice_to_notion.audio.probe.shutil.which", return_value="/usr/bin/ffprobe"):
            with pytest.raises(AudioFileNotFoundError):
                await process_audio(str(tmp_path / "missing.mp3"), 1000)

    async def test_small_file_is_single_chunk_at_original_path(self, audio_file):
        completed = MagicMock(stdout=_probe_json())
        with (
            patch("voice_to_notion.audio.probe.shutil.which", return_value="/usr/bin/ffprobe"),
            patch("voice_to_notion.audio.probe.subprocess.run", return_value=completed),
        ):
            result = await process_audio(audio_file, 25 * 1024 * 1024)

        assert len(result.chunks) == 1
        chunk = result.chunks[0]
        assert chunk.path == audio_file
        assert (chunk.index, chunk.start, chunk.end) == (0, 0.0, 120.5)
