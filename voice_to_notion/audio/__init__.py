"""Audio probing and chunking.

process_audio() validates the input, probes it and splits it when it
exceeds the provider's upload ceiling.
"""

from __future__ import annotations

import logging
import os

from voice_to_notion.audio.chunking import (
    chunk_count,
    cleanup,
    max_file_size,
    needs_chunking,
    split,
)
from voice_to_notion.audio.probe import check_ffmpeg, probe
from voice_to_notion.models import AudioProcessingResult
from voice_to_notion.utils.errors import AudioFileNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "check_ffmpeg",
    "chunk_count",
    "cleanup",
    "max_file_size",
    "needs_chunking",
    "probe",
    "process_audio",
    "split",
]


async def process_audio(input_path: str, max_size: int) -> AudioProcessingResult:
    """Validate, probe and (if needed) split an audio file.

    Args:
        input_path: Path to the recording.
        max_size: Upload ceiling in bytes for the chosen provider.

    Returns:
        AudioProcessingResult with metadata and ordered chunks.

    Raises:
        FFmpegNotFoundError: If ffprobe/ffmpeg is not installed.
        AudioFileNotFoundError: If input_path does not exist.
        FFmpegError: If probing or splitting fails.
    """
    check_ffmpeg()

    if not os.path.isfile(input_path):
        raise AudioFileNotFoundError(input_path)

    metadata = await probe(input_path)
    logger.debug(
        "Audio duration: %.1fs, size: %d bytes",
        metadata.duration,
        metadata.file_size,
    )

    if needs_chunking(metadata, max_size):
        logger.debug("Audio file requires chunking")
    chunks = await split(input_path, metadata, max_size)

    return AudioProcessingResult(metadata=metadata, chunks=chunks)
