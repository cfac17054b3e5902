"""Tests for the voice note block tree and its renderers."""

import pytest

from voice_to_notion.models import SummarizationResult, TranscriptionResult
from voice_to_notion.notion.blocks import (
    BulletItem,
    CheckItem,
    Divider,
    Heading,
    Paragraph,
    Toggle,
    build_preview_content,
    build_voice_note_page,
    metadata_line,
    render_preview,
    round_minutes,
    split_text,
    to_notion_blocks,
    to_notion_icon,
    to_notion_properties,
)

SUMMARY = SummarizationResult(
    title="Weekly planning",
    summary="Planned the week.",
    main_points=["Ship the release", "Review budget"],
    action_items=["Email Sam"],
)
TRANSCRIPT = TranscriptionResult(text="we planned the week", duration=150.0, provider="groq")


class TestRoundMinutes:
    """Tests for round_minutes()."""

    @pytest.mark.parametrize(
        ("seconds", "minutes"),
        [(0, 0), (29.9, 0), (30, 1), (89, 1), (90, 2), (150, 3)],
    )
    def test_half_rounds_up(self, seconds: float, minutes: int):
        assert round_minutes(seconds) == minutes

    def test_metadata_line(self):
        assert metadata_line(TRANSCRIPT) == "Duration: 3 minutes | Provider: groq"


class TestBuildVoiceNotePage:
    """Tests for build_voice_note_page()."""

    def test_full_page_structure(self):
        page = build_voice_note_page(SUMMARY, TRANSCRIPT)

        assert page.title == "Weekly planning"
        assert page.icon == "🤖"
        assert page.blocks == (
            Heading("Summary"),
            Paragraph("Planned the week."),
            Heading("Key Points"),
            BulletItem("Ship the release"),
            BulletItem("Review budget"),
            Heading("Action Items"),
            CheckItem("Email Sam"),
            Heading("Full Transcript"),
            Toggle("Click to expand transcript", (Paragraph("we planned the week"),)),
            Divider(),
            Paragraph("Duration: 3 minutes | Provider: groq"),
        )

    def test_empty_sections_omitted(self):
        summary = SummarizationResult(title="t", summary="s", main_points=[], action_items=[])
        headings = [b.text for b in build_voice_note_page(summary, TRANSCRIPT).blocks if isinstance(b, Heading)]
        assert headings == ["Summary", "Full Transcript"]


class TestRenderPreview:
    """Tests for the dry-run preview text."""

    def test_preview_text(self):
        expected = "\n".join(
            [
                "# Weekly planning",
                "",
                "## Summary",
                "Planned the week.",
                "",
                "## Key Points",
                "- Ship the release",
                "- Review budget",
                "",
                "## Action Items",
                "- [ ] Email Sam",
                "",
                "## Full Transcript",
                "we planned the week",
                "",
                "---",
                "Duration: 3 minutes | Provider: groq",
            ]
        )
        assert build_preview_content(SUMMARY, TRANSCRIPT) == expected

    def test_preview_without_action_items(self):
        summary = SummarizationResult(title="t", summary="s", main_points=["p"], action_items=[])
        preview = render_preview(build_voice_note_page(summary, TRANSCRIPT))
        assert "Action Items" not in preview
        assert "- [ ]" not in preview


class TestNotionSerialization:
    """Tests for the Notion API JSON renderers."""

    def test_block_types_in_order(self):
        blocks = to_notion_blocks(build_voice_note_page(SUMMARY, TRANSCRIPT))
        assert [b["type"] for b in blocks] == [
            "heading_2",
            "paragraph",
            "heading_2",
            "bulleted_list_item",
            "bulleted_list_item",
            "heading_2",
            "to_do",
            "heading_2",
            "toggle",
            "divider",
            "paragraph",
        ]

    def test_to_do_unchecked(self):
        blocks = to_notion_blocks(build_voice_note_page(SUMMARY, TRANSCRIPT))
        to_do = next(b for b in blocks if b["type"] == "to_do")
        assert to_do["to_do"]["checked"] is False
        assert to_do["to_do"]["rich_text"][0]["text"]["content"] == "Email Sam"

    def test_toggle_contains_transcript(self):
        blocks = to_notion_blocks(build_voice_note_page(SUMMARY, TRANSCRIPT))
        toggle = next(b for b in blocks if b["type"] == "toggle")
        assert toggle["toggle"]["rich_text"][0]["text"]["content"] == "Click to expand transcript"
        child = toggle["toggle"]["children"][0]
        assert child["paragraph"]["rich_text"][0]["text"]["content"] == "we planned the week"

    def test_long_transcript_split_into_segments(self):
        transcript = TranscriptionResult(text="a" * 4500, duration=60.0, provider="openai")
        blocks = to_notion_blocks(build_voice_note_page(SUMMARY, transcript))
        toggle = next(b for b in blocks if b["type"] == "toggle")
        segments = toggle["toggle"]["children"][0]["paragraph"]["rich_text"]

        assert [len(s["text"]["content"]) for s in segments] == [2000, 2000, 500]
        assert "".join(s["text"]["content"] for s in segments) == "a" * 4500

    def test_very_long_text_spans_blocks(self):
        transcript = TranscriptionResult(text="b" * (2000 * 101), duration=60.0, provider="groq")
        blocks = to_notion_blocks(build_voice_note_page(SUMMARY, transcript))
        children = next(b for b in blocks if b["type"] == "toggle")["toggle"]["children"]

        assert len(children) == 2
        assert len(children[0]["paragraph"]["rich_text"]) == 100
        assert len(children[1]["paragraph"]["rich_text"]) == 1

    def test_split_text(self):
        assert split_text("") == [""]
        assert split_text("abcde", limit=2) == ["ab", "cd", "e"]

    def test_properties_and_icon(self):
        page = build_voice_note_page(SUMMARY, TRANSCRIPT)
        assert to_notion_properties(page) == {
            "Name": {"title": [{"type": "text", "text": {"content": "Weekly planning"}}]},
            "Type": {"select": {"name": "Voice Note"}},
        }
        assert to_notion_icon(page) == {"type": "emoji", "emoji": "🤖"}
