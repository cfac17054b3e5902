"""Step runners for the replay harness.

Each runner wraps one pipeline step, reports progress on the console and
persists its result in the StepCache. Runners never raise; failures are
returned as a StepResult with success=False and are never cached.

A cached result is reused only when the input snapshot recorded with it
equals the snapshot of the current call.
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from voice_to_notion.asr import transcribe
from voice_to_notion.audio import max_file_size, process_audio
from voice_to_notion.config import DEFAULT_PROVIDER, Config, load_config, resolve_provider
from voice_to_notion.harness import reporter
from voice_to_notion.harness.cache import CacheEntry, StepCache
from voice_to_notion.models import (
    AudioChunk,
    AudioProcessingResult,
    NotionPageResult,
    SummarizationResult,
    TranscriptionResult,
)
from voice_to_notion.notion import preview, publish
from voice_to_notion.observability.metrics import StageTimer
from voice_to_notion.summarization import summarize
from voice_to_notion.utils.errors import MissingEnvVarError, MissingProviderKeyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StepResult:
    """Outcome of one harness step."""

    step: str
    success: bool
    data: Any = None
    error: str | None = None
    duration_ms: int = 0
    cached: bool = False
    preview: str | None = None
    dry_run: bool = False


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _failure(
    step: str, error: BaseException | str, duration_ms: int = 0, **kwargs: Any
) -> StepResult:
    reporter.print_error(error)
    reporter.print_result(False, duration_ms, False)
    logger.debug("Step %s failed: %s", step, error, extra={"step": step})
    return StepResult(
        step=step, success=False, error=str(error), duration_ms=duration_ms, **kwargs
    )


def _from_cache(
    step: str, data: Any, entry: CacheEntry, display: dict[str, Any]
) -> StepResult:
    reporter.print_progress("Using cached result", True)
    reporter.print_output(display)
    reporter.print_result(True, entry.duration_ms, True)
    return StepResult(
        step=step, success=True, data=data, duration_ms=entry.duration_ms, cached=True
    )


def _parse_output(entry: CacheEntry | None, parse: Callable[[Any], T]) -> T | None:
    # A malformed output shape counts as absent
    if entry is None:
        return None
    try:
        return parse(entry.output)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.debug("Ignoring malformed cache output: %s", exc)
        return None


def _load_output(cache: StepCache, step: str, parse: Callable[[Any], T]) -> T | None:
    """Return a step's cached output regardless of the input it was made from."""
    return _parse_output(cache.read(step), parse)


def _lookup(
    cache: StepCache, step: str, snapshot: Any, parse: Callable[[Any], T]
) -> tuple[CacheEntry, T] | None:
    """Return the cached entry and output if recorded for the same input."""
    entry = cache.read(step)
    if entry is None or entry.input != snapshot:
        return None
    data = _parse_output(entry, parse)
    if data is None:
        return None
    return entry, data


def _missing_cache(step: str, upstream: str, **kwargs: Any) -> StepResult:
    return _failure(
        step, f"No {upstream} cache found. Run {upstream} step first.", **kwargs
    )


# -- Audio --


def _ceiling_provider(config: Config, provider: str | None) -> str:
    """Provider whose upload ceiling applies, with the transcription fallback."""
    try:
        return resolve_provider(config, provider)
    except MissingProviderKeyError:
        # Probing needs no key; size for the requested provider
        return (provider or config.transcription_provider or DEFAULT_PROVIDER).lower()


def format_audio_output(result: AudioProcessingResult) -> dict[str, Any]:
    metadata = result.metadata
    chunks = len(result.chunks)
    return {
        "Duration": f"{metadata.duration:.1f}s",
        "Format": metadata.format,
        "File Size": _format_bytes(metadata.file_size),
        "Bitrate": f"{round(metadata.bitrate / 1000)} kbps",
        "Channels": metadata.channels,
        "Sample Rate": f"{metadata.sample_rate} Hz",
        "Chunks Required": f"Yes ({chunks} chunks)" if chunks > 1 else "No (single file)",
    }


async def run_audio_step(
    file_path: str,
    *,
    cache: StepCache,
    use_cache: bool = True,
    provider: str | None = None,
    config: Config | None = None,
) -> StepResult:
    """Probe and chunk an audio file.

    Chunk files are kept on disk so later steps can replay from cache.
    A cached result is reused only while all of its chunk files exist.
    """
    reporter.print_step_header(1, "Audio Processing")
    reporter.print_input({"File": file_path})

    try:
        config = config or load_config(required=())
        selected = _ceiling_provider(config, provider)
        max_size = max_file_size(selected, config.groq_max_file_size_mb)
    except Exception as exc:
        return _failure("audio", exc)

    snapshot = {"file_path": file_path, "max_file_size": max_size}

    if use_cache:
        hit = _lookup(cache, "audio", snapshot, AudioProcessingResult.from_dict)
        if hit is not None:
            entry, cached = hit
            if all(os.path.isfile(chunk.path) for chunk in cached.chunks):
                return _from_cache("audio", cached, entry, format_audio_output(cached))
            reporter.print_progress("Cached chunk files are gone, reprocessing", False)

    print("Processing...")
    timer = StageTimer("audio")
    try:
        with timer:
            reporter.print_progress("Probing and splitting audio")
            result = await process_audio(file_path, max_size)
            reporter.print_progress(
                f"Split into {len(result.chunks)} chunks"
                if len(result.chunks) > 1
                else "No chunking required",
                True,
            )
        cache.write("audio", snapshot, result.to_dict(), timer.duration_ms)
    except Exception as exc:
        return _failure("audio", exc, timer.duration_ms)

    reporter.print_output(format_audio_output(result))
    reporter.print_result(True, timer.duration_ms, False, cache.path_for("audio"))
    return StepResult(step="audio", success=True, data=result, duration_ms=timer.duration_ms)


# -- Transcription --


def format_transcription_output(result: TranscriptionResult) -> dict[str, Any]:
    text = result.text
    return {
        "Provider": result.provider,
        "Duration": f"{result.duration:.1f}s",
        "Text Length": f"{len(text)} characters",
        "Preview": text[:200] + "..." if len(text) > 200 else text,
    }


async def run_transcription_step(
    *,
    cache: StepCache,
    chunks: Sequence[AudioChunk] | None = None,
    provider: str | None = None,
    use_cache: bool = True,
    from_cache: bool = False,
    config: Config | None = None,
) -> StepResult:
    """Transcribe chunks, taken from the audio cache when not given."""
    reporter.print_step_header(2, "Transcription")

    if from_cache or chunks is None:
        reporter.print_progress("Loading audio chunks from cache")
        audio = _load_output(cache, "audio", AudioProcessingResult.from_dict)
        if audio is None:
            return _missing_cache("transcription", "audio")
        chunks = audio.chunks
        reporter.print_progress(f"Loaded {len(chunks)} chunk(s) from cache", True)

    reporter.print_input({"Chunks": len(chunks), "Provider": provider or "auto-detect"})

    try:
        config = config or load_config(required=())
        selected = resolve_provider(config, provider)
    except Exception as exc:
        return _failure("transcription", exc)
    reporter.print_progress(f"Using provider: {selected}", True)

    snapshot = {"chunks": [chunk.to_dict() for chunk in chunks], "provider": selected}

    if use_cache and not from_cache:
        hit = _lookup(cache, "transcription", snapshot, TranscriptionResult.from_dict)
        if hit is not None:
            entry, cached = hit
            return _from_cache(
                "transcription", cached, entry, format_transcription_output(cached)
            )

    print("Processing...")
    timer = StageTimer("transcription")
    try:
        with timer:
            reporter.print_progress("Transcribing audio")
            result = await transcribe(config, list(chunks), selected)
            reporter.print_progress(f"Transcribed {len(result.text)} characters", True)
        cache.write("transcription", snapshot, result.to_dict(), timer.duration_ms)
    except Exception as exc:
        return _failure("transcription", exc, timer.duration_ms)

    reporter.print_output(format_transcription_output(result))
    reporter.print_result(True, timer.duration_ms, False, cache.path_for("transcription"))
    return StepResult(
        step="transcription", success=True, data=result, duration_ms=timer.duration_ms
    )


# -- Summarization --


def format_summarization_output(result: SummarizationResult) -> dict[str, Any]:
    return {
        "Title": result.title,
        "Summary": result.summary,
        "Main Points": result.main_points,
        "Action Items": result.action_items or "(none)",
    }


async def run_summarization_step(
    *,
    cache: StepCache,
    text: str | None = None,
    use_cache: bool = True,
    from_cache: bool = False,
    config: Config | None = None,
) -> StepResult:
    """Summarize text, taken from the transcription cache when not given."""
    reporter.print_step_header(3, "Summarization")

    if from_cache or text is None:
        reporter.print_progress("Loading transcription from cache")
        transcription = _load_output(cache, "transcription", TranscriptionResult.from_dict)
        if transcription is None:
            return _missing_cache("summarization", "transcription")
        text = transcription.text
        reporter.print_progress(f"Loaded transcription ({len(text)} chars) from cache", True)

    reporter.print_input(
        {
            "Text Length": f"{len(text)} characters",
            "Preview": text[:100] + "..." if len(text) > 100 else text,
        }
    )

    snapshot = {"text_length": len(text), "text_sha256": sha256_text(text)}

    if use_cache and not from_cache:
        hit = _lookup(cache, "summarization", snapshot, SummarizationResult.from_dict)
        if hit is not None:
            entry, cached = hit
            return _from_cache(
                "summarization", cached, entry, format_summarization_output(cached)
            )

    print("Processing...")
    timer = StageTimer("summarization")
    try:
        config = config or load_config(required=())
        if not config.anthropic_api_key:
            raise MissingEnvVarError("ANTHROPIC_API_KEY")
        with timer:
            reporter.print_progress("Sending to Claude for summarization")
            result = await summarize(
                config.anthropic_api_key, text, model=config.anthropic_model
            )
            reporter.print_progress(f'Generated summary: "{result.title}"', True)
        cache.write("summarization", snapshot, result.to_dict(), timer.duration_ms)
    except Exception as exc:
        return _failure("summarization", exc, timer.duration_ms)

    reporter.print_output(format_summarization_output(result))
    reporter.print_result(True, timer.duration_ms, False, cache.path_for("summarization"))
    return StepResult(
        step="summarization", success=True, data=result, duration_ms=timer.duration_ms
    )


# -- Notion --


def format_notion_output(result: NotionPageResult) -> dict[str, Any]:
    return {"Page ID": result.page_id, "URL": result.url}


async def run_notion_step(
    *,
    cache: StepCache,
    summary: SummarizationResult | None = None,
    transcription: TranscriptionResult | None = None,
    database_id: str | None = None,
    use_cache: bool = True,
    from_cache: bool = False,
    dry_run: bool = False,
    config: Config | None = None,
) -> StepResult:
    """Publish the page, or render its preview in dry-run mode.

    Dry runs neither read nor write the notion cache entry.
    """
    reporter.print_step_header(4, "Notion Page Creation")

    if from_cache or summary is None:
        reporter.print_progress("Loading summarization from cache")
        summary = _load_output(cache, "summarization", SummarizationResult.from_dict)
        if summary is None:
            return _missing_cache("notion", "summarization", dry_run=dry_run)
        reporter.print_progress("Loaded summary from cache", True)

    if from_cache or transcription is None:
        reporter.print_progress("Loading transcription from cache")
        transcription = _load_output(cache, "transcription", TranscriptionResult.from_dict)
        if transcription is None:
            return _missing_cache("notion", "transcription", dry_run=dry_run)
        reporter.print_progress("Loaded transcription from cache", True)

    reporter.print_input(
        {
            "Title": summary.title,
            "Main Points": len(summary.main_points),
            "Action Items": len(summary.action_items),
            "Transcript Length": f"{len(transcription.text)} chars",
        }
    )

    if dry_run:
        timer = StageTimer("notion")
        with timer:
            content = preview(summary, transcription)
        reporter.print_progress("Dry run mode - generating preview", True)
        reporter.print_dry_run_preview(content)
        reporter.print_result(True, timer.duration_ms, False)
        return StepResult(
            step="notion",
            success=True,
            duration_ms=timer.duration_ms,
            preview=content,
            dry_run=True,
        )

    try:
        config = config or load_config(required=())
        if not config.notion_api_key:
            raise MissingEnvVarError("NOTION_API_KEY")
        target = database_id or config.notion_database_id
        if not target:
            raise MissingEnvVarError("NOTION_DATABASE_ID")
    except Exception as exc:
        return _failure("notion", exc)

    snapshot = {
        "title": summary.title,
        "database_id": target,
        "transcript_sha256": sha256_text(transcription.text),
    }

    if use_cache and not from_cache:
        hit = _lookup(cache, "notion", snapshot, NotionPageResult.from_dict)
        if hit is not None:
            entry, cached = hit
            return _from_cache("notion", cached, entry, format_notion_output(cached))

    print("Processing...")
    timer = StageTimer("notion")
    try:
        with timer:
            reporter.print_progress("Creating Notion page")
            result = await publish(config.notion_api_key, target, summary, transcription)
            reporter.print_progress(f"Page created: {result.url}", True)
        cache.write("notion", snapshot, result.to_dict(), timer.duration_ms)
    except Exception as exc:
        return _failure("notion", exc, timer.duration_ms)

    reporter.print_output(format_notion_output(result))
    reporter.print_result(True, timer.duration_ms, False, cache.path_for("notion"))
    return StepResult(step="notion", success=True, data=result, duration_ms=timer.duration_ms)


async def run_all_steps(
    file_path: str,
    *,
    cache: StepCache,
    use_cache: bool = True,
    dry_run: bool = False,
    config: Config | None = None,
) -> list[StepResult]:
    """Run audio through notion, stopping at the first failed step."""
    results: list[StepResult] = []

    audio = await run_audio_step(file_path, cache=cache, use_cache=use_cache, config=config)
    results.append(audio)
    if not audio.success:
        return results

    transcription = await run_transcription_step(
        cache=cache, chunks=audio.data.chunks, use_cache=use_cache, config=config
    )
    results.append(transcription)
    if not transcription.success:
        return results

    summary = await run_summarization_step(
        cache=cache, text=transcription.data.text, use_cache=use_cache, config=config
    )
    results.append(summary)
    if not summary.success:
        return results

    results.append(
        await run_notion_step(
            cache=cache,
            summary=summary.data,
            transcription=transcription.data,
            use_cache=use_cache,
            dry_run=dry_run,
            config=config,
        )
    )
    return results
