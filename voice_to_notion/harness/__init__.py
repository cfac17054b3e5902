"""Step-by-step replay harness with an on-disk result cache."""

from voice_to_notion.harness.cache import STEPS, CacheEntry, StepCache
from voice_to_notion.harness.steps import (
    StepResult,
    run_audio_step,
    run_notion_step,
    run_summarization_step,
    run_transcription_step,
)

__all__ = [
    "STEPS",
    "CacheEntry",
    "StepCache",
    "StepResult",
    "run_audio_step",
    "run_notion_step",
    "run_summarization_step",
    "run_transcription_step",
]
