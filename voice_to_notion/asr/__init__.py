"""Speech-to-text providers and transcription dispatch."""

from voice_to_notion.asr.dispatch import transcribe
from voice_to_notion.asr.registry import get_asr_engine

__all__ = ["get_asr_engine", "transcribe"]
