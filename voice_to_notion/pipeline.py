"""Main run_pipeline() orchestrator for voice note processing.

Orchestrates: probe/split audio -> transcribe -> cleanup chunks ->
summarize -> publish to Notion (or render a dry-run preview).
Typed errors propagate unchanged to the caller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any

from voice_to_notion.asr import transcribe
from voice_to_notion.audio import cleanup, max_file_size, process_audio
from voice_to_notion.config import Config, resolve_provider
from voice_to_notion.models import (
    NotionPageResult,
    SummarizationResult,
    TranscriptionResult,
)
from voice_to_notion.notion import preview, publish
from voice_to_notion.observability.metrics import RunMetrics, StageTimer, log_run_metrics
from voice_to_notion.summarization import summarize
from voice_to_notion.utils.errors import AudioFileNotFoundError, PipelineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineRequest:
    """What to process and how, independent of the CLI surface."""

    audio_file: str
    provider: str | None = None
    title: str | None = None
    database_id: str | None = None
    dry_run: bool = False


@dataclass
class PipelineOutcome:
    """Result of a successful pipeline run."""

    audio_file: str
    transcription: TranscriptionResult
    summary: SummarizationResult
    notion: NotionPageResult | None = None
    preview: str | None = None
    step_durations_ms: dict[str, int] = field(default_factory=dict)

    def to_json_dict(self) -> dict[str, Any]:
        """Build the --json success payload."""
        result: dict[str, Any] = {
            "success": True,
            "audioFile": self.audio_file,
            "transcription": self.transcription.to_dict(),
            "summary": self.summary.to_dict(),
        }
        if self.notion is not None:
            result["notion"] = self.notion.to_dict()
        return result


async def run_pipeline(request: PipelineRequest, config: Config) -> PipelineOutcome:
    """Run every step for one audio file.

    Chunk files created by splitting are removed once transcription
    finishes, whether it succeeded or not.

    Args:
        request: Input file and per-run overrides.
        config: Loaded environment configuration.

    Returns:
        PipelineOutcome with the transcript, summary and either the Notion
        page or the dry-run preview.

    Raises:
        PipelineError: Any typed failure from a step, unchanged.
    """
    timings: dict[str, int] = {}
    metrics = RunMetrics(
        audio_file=request.audio_file,
        status="failed",
        dry_run=request.dry_run,
        step_durations_ms=timings,
    )

    try:
        provider = resolve_provider(config, request.provider)
        metrics.provider = provider
        database_id = request.database_id or config.notion_database_id

        if not os.path.isfile(request.audio_file):
            raise AudioFileNotFoundError(request.audio_file)
        logger.info("Processing: %s", os.path.abspath(request.audio_file))

        logger.info("Analyzing audio file...", extra={"step": "audio"})
        with StageTimer("audio", timings):
            audio = await process_audio(
                request.audio_file,
                max_file_size(provider, config.groq_max_file_size_mb),
            )
        metrics.audio_duration_seconds = audio.metadata.duration
        metrics.audio_size_bytes = audio.metadata.file_size
        metrics.chunk_count = len(audio.chunks)

        logger.info("Transcribing audio...", extra={"step": "transcription"})
        try:
            with StageTimer("transcription", timings):
                transcription = await transcribe(config, audio.chunks, provider)
        finally:
            cleanup(audio.chunks)
        metrics.transcript_characters = len(transcription.text)

        logger.info("Generating summary with Claude...", extra={"step": "summarization"})
        with StageTimer("summarization", timings):
            summary = await summarize(
                config.anthropic_api_key,
                transcription.text,
                model=config.anthropic_model,
            )
        if request.title:
            summary = replace(summary, title=request.title)

        outcome = PipelineOutcome(
            audio_file=request.audio_file,
            transcription=transcription,
            summary=summary,
            step_durations_ms=timings,
        )

        if request.dry_run:
            logger.info("Dry run mode - not creating Notion page", extra={"step": "notion"})
            outcome.preview = preview(summary, transcription)
        else:
            logger.info("Creating Notion page...", extra={"step": "notion"})
            with StageTimer("notion", timings):
                outcome.notion = await publish(
                    config.notion_api_key, database_id, summary, transcription
                )
            logger.info("Page created: %s", outcome.notion.url)

        metrics.status = "completed"
        return outcome

    except PipelineError as exc:
        metrics.error_category = exc.category
        metrics.exit_code = exc.exit_code
        raise
    finally:
        log_run_metrics(metrics)
