"""Voice note page content as a tagged block tree.

build_voice_note_page() derives the tree once from the summary and the
transcript. The same tree is rendered either to Notion API JSON or to
the plain-text dry-run preview, so both always show the same content.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Union

from voice_to_notion.models import SummarizationResult, TranscriptionResult

PAGE_ICON = "🤖"
TITLE_PROPERTY = "Name"
TYPE_PROPERTY = "Type"
TYPE_VALUE = "Voice Note"
TRANSCRIPT_TOGGLE_LABEL = "Click to expand transcript"

# Notion API limits
MAX_RICH_TEXT_LENGTH = 2000
MAX_RICH_TEXT_ITEMS = 100


@dataclass(frozen=True)
class Heading:
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class BulletItem:
    text: str


@dataclass(frozen=True)
class CheckItem:
    text: str
    checked: bool = False


@dataclass(frozen=True)
class Toggle:
    summary: str
    children: tuple[Block, ...] = ()


@dataclass(frozen=True)
class Divider:
    pass


Block = Union[Heading, Paragraph, BulletItem, CheckItem, Toggle, Divider]


@dataclass(frozen=True)
class VoiceNotePage:
    """Title, icon and ordered top-level blocks of a voice note page."""

    title: str
    icon: str = PAGE_ICON
    blocks: tuple[Block, ...] = field(default_factory=tuple)


def round_minutes(seconds: float) -> int:
    """Round a duration to whole minutes, halves rounding up."""
    return math.floor(seconds / 60 + 0.5)


def metadata_line(transcription: TranscriptionResult) -> str:
    return (
        f"Duration: {round_minutes(transcription.duration)} minutes"
        f" | Provider: {transcription.provider}"
    )


def build_voice_note_page(
    summary: SummarizationResult, transcription: TranscriptionResult
) -> VoiceNotePage:
    """Build the page tree for a summarized voice note.

    Key Points and Action Items sections are omitted when empty.
    """
    blocks: list[Block] = [Heading("Summary"), Paragraph(summary.summary)]

    if summary.main_points:
        blocks.append(Heading("Key Points"))
        blocks.extend(BulletItem(point) for point in summary.main_points)

    if summary.action_items:
        blocks.append(Heading("Action Items"))
        blocks.extend(CheckItem(item) for item in summary.action_items)

    blocks.append(Heading("Full Transcript"))
    blocks.append(
        Toggle(TRANSCRIPT_TOGGLE_LABEL, children=(Paragraph(transcription.text),))
    )
    blocks.append(Divider())
    blocks.append(Paragraph(metadata_line(transcription)))

    return VoiceNotePage(title=summary.title, blocks=tuple(blocks))


# -- Plain-text preview --


def _preview_lines(block: Block) -> list[str]:
    if isinstance(block, Heading):
        return [f"## {block.text}"]
    if isinstance(block, Paragraph):
        return [block.text]
    if isinstance(block, BulletItem):
        return [f"- {block.text}"]
    if isinstance(block, CheckItem):
        mark = "x" if block.checked else " "
        return [f"- [{mark}] {block.text}"]
    if isinstance(block, Toggle):
        lines: list[str] = []
        for child in block.children:
            lines.extend(_preview_lines(child))
        return lines
    if isinstance(block, Divider):
        return ["---"]
    raise TypeError(f"Unsupported block: {block!r}")


def render_preview(page: VoiceNotePage) -> str:
    """Render the page as Markdown-like text.

    A blank line closes each section before the next heading or divider.
    """
    lines = [f"# {page.title}", ""]
    for index, block in enumerate(page.blocks):
        if isinstance(block, (Heading, Divider)) and index > 0 and lines[-1] != "":
            lines.append("")
        lines.extend(_preview_lines(block))
    return "\n".join(lines)


def build_preview_content(
    summary: SummarizationResult, transcription: TranscriptionResult
) -> str:
    return render_preview(build_voice_note_page(summary, transcription))


# -- Notion API serialization --


def split_text(text: str, limit: int = MAX_RICH_TEXT_LENGTH) -> list[str]:
    """Split text into pieces no longer than limit characters."""
    if not text:
        return [""]
    return [text[i:i + limit] for i in range(0, len(text), limit)]


def rich_text(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": piece}} for piece in split_text(text)]


def _rich_text_groups(text: str) -> list[list[dict[str, Any]]]:
    segments = rich_text(text)
    return [
        segments[i:i + MAX_RICH_TEXT_ITEMS]
        for i in range(0, len(segments), MAX_RICH_TEXT_ITEMS)
    ]


def _text_blocks(block_type: str, text: str, **extra: Any) -> list[dict[str, Any]]:
    # Text beyond one block's rich_text limit continues in further blocks
    return [
        {
            "object": "block",
            "type": block_type,
            block_type: {"rich_text": group, **extra},
        }
        for group in _rich_text_groups(text)
    ]


def block_to_notion(block: Block) -> list[dict[str, Any]]:
    """Serialize one tree node into Notion block objects."""
    if isinstance(block, Heading):
        return _text_blocks("heading_2", block.text)
    if isinstance(block, Paragraph):
        return _text_blocks("paragraph", block.text)
    if isinstance(block, BulletItem):
        return _text_blocks("bulleted_list_item", block.text)
    if isinstance(block, CheckItem):
        return _text_blocks("to_do", block.text, checked=block.checked)
    if isinstance(block, Toggle):
        children: list[dict[str, Any]] = []
        for child in block.children:
            children.extend(block_to_notion(child))
        return [
            {
                "object": "block",
                "type": "toggle",
                "toggle": {"rich_text": rich_text(block.summary), "children": children},
            }
        ]
    if isinstance(block, Divider):
        return [{"object": "block", "type": "divider", "divider": {}}]
    raise TypeError(f"Unsupported block: {block!r}")


def to_notion_blocks(page: VoiceNotePage) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    for block in page.blocks:
        blocks.extend(block_to_notion(block))
    return blocks


def to_notion_properties(page: VoiceNotePage) -> dict[str, Any]:
    return {
        TITLE_PROPERTY: {"title": rich_text(page.title)},
        TYPE_PROPERTY: {"select": {"name": TYPE_VALUE}},
    }


def to_notion_icon(page: VoiceNotePage) -> dict[str, Any]:
    return {"type": "emoji", "emoji": page.icon}
