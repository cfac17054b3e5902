"""Size-limit decisions and ffmpeg splitting for oversized audio.

Whisper-style APIs limit uploads by file size, not duration, so the
chunk count is derived from the file size and the provider ceiling,
and the duration is then divided into equal spans.
"""

from __future__ import annotations

import asyncio
import logging
import math
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from voice_to_notion.models import AudioChunk, AudioMetadata
from voice_to_notion.utils.errors import FFmpegError, FFmpegNotFoundError

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024
MAX_FILE_SIZE_OPENAI = 25 * MEGABYTE
MAX_FILE_SIZE_GROQ_DEFAULT = 25 * MEGABYTE

FFMPEG_SPLIT_TIMEOUT_SECONDS = 300
TEMP_DIR_PREFIX = "voice-to-notion-"


def _parse_limit_mb(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        limit = int(value.strip())
    except ValueError:
        return None
    return limit if limit > 0 else None


def max_file_size(provider: str, groq_limit_mb: str | None = None) -> int:
    """Return the upload size ceiling in bytes for a provider.

    Groq's default can be raised for developer-tier accounts with
    GROQ_MAX_FILE_SIZE_MB. Non-positive or unparseable overrides are
    ignored.
    """
    if provider == "groq":
        limit_mb = _parse_limit_mb(groq_limit_mb)
        if limit_mb is not None:
            return limit_mb * MEGABYTE
        return MAX_FILE_SIZE_GROQ_DEFAULT
    return MAX_FILE_SIZE_OPENAI


def needs_chunking(metadata: AudioMetadata, max_size: int) -> bool:
    return metadata.file_size > max_size


def chunk_count(metadata: AudioMetadata, max_size: int) -> int:
    return max(math.ceil(metadata.file_size / max_size), 1)


def plan_chunks(
    input_path: str, metadata: AudioMetadata, count: int, output_dir: str
) -> list[AudioChunk]:
    """Divide [0, duration] into count equal spans with output paths.

    The last span ends exactly at metadata.duration.
    """
    source = Path(input_path)
    span = metadata.duration / count
    chunks: list[AudioChunk] = []
    for index in range(count):
        start = index * span
        if index == count - 1:
            end = metadata.duration
        else:
            end = min((index + 1) * span, metadata.duration)
        path = os.path.join(
            output_dir, f"{source.stem}_chunk_{index}{source.suffix}"
        )
        chunks.append(AudioChunk(path=path, index=index, start=start, end=end))
    return chunks


def _check_ffmpeg_available() -> str:
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path is None:
        raise FFmpegNotFoundError()
    return ffmpeg_path


def _extract_chunk(ffmpeg_path: str, input_path: str, chunk: AudioChunk) -> None:
    cmd = [
        ffmpeg_path,
        "-y",
        "-i", input_path,
        "-ss", str(chunk.start),
        "-t", str(chunk.span),
        "-c", "copy",
        "-avoid_negative_ts", "1",
        chunk.path,
    ]

    try:
        subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=FFMPEG_SPLIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as exc:
        raise FFmpegNotFoundError() from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "unknown error"
        raise FFmpegError(f"Failed to create chunk {chunk.index}: {stderr}") from exc
    except subprocess.TimeoutExpired as exc:
        raise FFmpegError(
            f"Failed to create chunk {chunk.index}: timed out after "
            f"{FFMPEG_SPLIT_TIMEOUT_SECONDS}s"
        ) from exc


async def split(
    input_path: str, metadata: AudioMetadata, max_size: int
) -> list[AudioChunk]:
    """Split an audio file so each piece fits under max_size.

    A file within the limit is returned as a single chunk at its
    original path; nothing is copied. Otherwise every span is extracted
    into a fresh temporary directory, and the first ffmpeg failure
    removes that directory and aborts the whole split.

    Raises:
        FFmpegNotFoundError: If ffmpeg is not installed.
        FFmpegError: If any split invocation fails.
    """
    count = chunk_count(metadata, max_size)
    if count == 1:
        logger.debug("File does not need chunking")
        return [AudioChunk(path=input_path, index=0, start=0.0, end=metadata.duration)]

    ffmpeg_path = _check_ffmpeg_available()
    logger.debug("Splitting audio into %d chunks", count)

    temp_dir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)
    chunks = plan_chunks(input_path, metadata, count, temp_dir)

    try:
        for chunk in chunks:
            logger.info(
                "Splitting chunk %d/%d",
                chunk.index + 1,
                count,
                extra={"chunk_index": chunk.index},
            )
            await asyncio.to_thread(_extract_chunk, ffmpeg_path, input_path, chunk)
    except Exception:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    logger.debug("Created %d chunks in %s", len(chunks), temp_dir)
    return chunks


def cleanup(chunks: list[AudioChunk]) -> None:
    """Delete temporary chunk files, never the original recording.

    A single-chunk list always points at the original file and is left
    alone. Errors are logged and swallowed.
    """
    if len(chunks) <= 1:
        return

    directories: set[str] = set()
    for chunk in chunks:
        directories.add(os.path.dirname(chunk.path))
        try:
            os.remove(chunk.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Could not remove chunk %s: %s", chunk.path, exc)

    for directory in directories:
        if not os.path.basename(directory).startswith(TEMP_DIR_PREFIX):
            continue
        try:
            os.rmdir(directory)
        except OSError as exc:
            logger.debug("Could not remove chunk directory %s: %s", directory, exc)
