"""Transcription dispatch over one or more audio chunks.

Chunks are sent one at a time, in index order; the transcript is the
chunk texts joined by single spaces.
"""

from __future__ import annotations

import logging
import os

from voice_to_notion.asr.interface import ASREngine
from voice_to_notion.asr.registry import get_asr_engine
from voice_to_notion.audio.chunking import max_file_size
from voice_to_notion.config import Config, resolve_provider
from voice_to_notion.models import AudioChunk, TranscriptionResult
from voice_to_notion.utils.errors import (
    MissingProviderKeyError,
    TranscriptionAPIError,
    TranscriptionFileTooLargeError,
)
from voice_to_notion.utils.retry import is_transient_error, retry

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

_TOO_LARGE_PATTERNS = ("413", "too large", "request entity too large")


def _is_too_large(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(pattern in text for pattern in _TOO_LARGE_PATTERNS)


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


async def transcribe(
    config: Config,
    chunks: list[AudioChunk],
    provider: str | None = None,
    engine: ASREngine | None = None,
) -> TranscriptionResult:
    """Transcribe audio chunks with the selected provider.

    Args:
        config: Loaded configuration with provider API keys.
        chunks: Chunks to transcribe; sorted by index before dispatch.
        provider: Explicit provider. Defaults to the resolved default.
        engine: Pre-built engine, mainly for tests.

    Returns:
        TranscriptionResult whose duration is the sum of chunk spans.

    Raises:
        MissingProviderKeyError: If the provider has no API key.
        TranscriptionFileTooLargeError: If the provider rejects a chunk
            for its size.
        TranscriptionAPIError: If a chunk still fails after retries.
    """
    selected = provider or resolve_provider(config)
    api_key = config.api_key_for(selected)
    if not api_key:
        raise MissingProviderKeyError(selected)

    if engine is None:
        engine = get_asr_engine(selected, api_key=api_key)
    display_name = engine.display_name or selected

    ordered = sorted(chunks, key=lambda c: c.index)
    logger.info(
        "Transcribing %d chunk(s) with %s",
        len(ordered),
        display_name,
        extra={"provider": selected},
    )

    texts: list[str] = []
    for position, chunk in enumerate(ordered, start=1):
        logger.info(
            "Transcribing chunk %d/%d",
            position,
            len(ordered),
            extra={"provider": selected, "chunk_index": chunk.index},
        )
        try:
            text = await retry(
                lambda chunk=chunk: engine.transcribe(chunk.path),
                max_attempts=MAX_ATTEMPTS,
                is_retryable=is_transient_error,
                description=f"{selected} chunk {chunk.index}",
            )
        except Exception as exc:
            if _is_too_large(exc):
                raise TranscriptionFileTooLargeError(
                    _file_size(chunk.path),
                    max_file_size(selected, config.groq_max_file_size_mb),
                ) from exc
            raise TranscriptionAPIError(display_name, exc) from exc
        texts.append(text.strip())

    result = TranscriptionResult(
        text=" ".join(texts),
        duration=sum(chunk.span for chunk in ordered),
        provider=selected,
    )
    logger.debug("Transcription complete: %d characters", len(result.text))
    return result
