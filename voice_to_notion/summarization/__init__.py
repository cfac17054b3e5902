"""Transcript summarization with Claude."""

from voice_to_notion.summarization.claude import parse_summary_response, summarize

__all__ = ["parse_summary_response", "summarize"]
