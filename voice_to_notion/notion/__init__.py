"""Notion page rendering and publication."""

from voice_to_notion.notion.blocks import build_preview_content, build_voice_note_page
from voice_to_notion.notion.client import NotionClient, preview, publish

__all__ = [
    "NotionClient",
    "build_preview_content",
    "build_voice_note_page",
    "preview",
    "publish",
]
