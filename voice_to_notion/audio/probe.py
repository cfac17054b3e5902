"""Audio metadata probing with ffprobe.

ffprobe runs in a worker thread so probing never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import subprocess

from voice_to_notion.models import AudioMetadata
from voice_to_notion.utils.errors import FFmpegError, FFmpegNotFoundError

logger = logging.getLogger(__name__)

FFPROBE_TIMEOUT_SECONDS = 30
DEFAULT_SAMPLE_RATE = 44100


def check_ffmpeg() -> str:
    """Verify ffprobe is available on the system.

    Returns:
        Path to the ffprobe binary.

    Raises:
        FFmpegNotFoundError: If ffprobe is not found on PATH.
    """
    ffprobe_path = shutil.which("ffprobe")
    if ffprobe_path is None:
        raise FFmpegNotFoundError()
    logger.debug("Found ffprobe at %s", ffprobe_path)
    return ffprobe_path


def _run_ffprobe(ffprobe_path: str, input_path: str) -> str:
    cmd = [
        ffprobe_path,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        input_path,
    ]

    try:
        completed = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=FFPROBE_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as exc:
        raise FFmpegNotFoundError() from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "unknown error"
        raise FFmpegError(f"Failed to probe audio file: {stderr}") from exc
    except subprocess.TimeoutExpired as exc:
        raise FFmpegError(
            f"ffprobe timed out after {FFPROBE_TIMEOUT_SECONDS}s"
        ) from exc
    return completed.stdout


def _to_int(value: object, default: int) -> int:
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _to_float(value: object, default: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def parse_probe_output(raw: str, file_size: int) -> AudioMetadata:
    """Convert ffprobe JSON output into AudioMetadata.

    Missing values fall back to duration 0, format "unknown", bitrate 0,
    one channel and 44.1kHz.

    Raises:
        FFmpegError: If the output is not JSON or has no audio stream.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FFmpegError(f"Unreadable ffprobe output: {exc}") from exc

    fmt = data.get("format") or {}
    streams = data.get("streams") or []
    audio_stream = next(
        (s for s in streams if s.get("codec_type") == "audio"), None
    )
    if audio_stream is None:
        raise FFmpegError("No audio stream found in file")

    return AudioMetadata(
        duration=_to_float(fmt.get("duration"), 0.0),
        format=fmt.get("format_name") or "unknown",
        bitrate=_to_int(fmt.get("bit_rate"), 0),
        channels=_to_int(audio_stream.get("channels"), 1) or 1,
        sample_rate=_to_int(audio_stream.get("sample_rate"), DEFAULT_SAMPLE_RATE)
        or DEFAULT_SAMPLE_RATE,
        file_size=file_size,
    )


async def probe(input_path: str) -> AudioMetadata:
    """Probe an audio file for duration, format and stream properties.

    Args:
        input_path: Path to a local audio file.

    Returns:
        AudioMetadata with file_size taken from the filesystem.

    Raises:
        FFmpegNotFoundError: If ffprobe is not installed.
        FFmpegError: If ffprobe fails or reports no audio stream.
    """
    ffprobe_path = check_ffmpeg()
    logger.debug("Probing audio file: %s", input_path)

    file_size = os.path.getsize(input_path)
    raw = await asyncio.to_thread(_run_ffprobe, ffprobe_path, input_path)
    metadata = parse_probe_output(raw, file_size)

    logger.debug("Audio metadata: %s", metadata.to_dict())
    return metadata
