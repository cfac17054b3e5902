"""Tests for voice_to_notion.pipeline module."""

from __future__ import annotations

import json
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from voice_to_notion.config import Config
from voice_to_notion.models import (
    AudioChunk,
    AudioMetadata,
    AudioProcessingResult,
    NotionPageResult,
    SummarizationResult,
    TranscriptionResult,
)
from voice_to_notion.pipeline import PipelineRequest, run_pipeline
from voice_to_notion.utils.errors import (
    AudioFileNotFoundError,
    MissingProviderKeyError,
    TranscriptionAPIError,
)

MIB = 1024 * 1024
GROQ_URL = "https://api.groq.com/openai/v1/audio/transcriptions"

CONFIG = Config(
    anthropic_api_key="sk-ant",
    notion_api_key="secret_notion",
    notion_database_id="db-default",
    groq_api_key="gsk",
)
SUMMARY = SummarizationResult(
    title="Weekly planning",
    summary="Planned the week.",
    main_points=["Ship the release"],
    action_items=["Email Sam"],
)
SUMMARY_JSON = json.dumps(SUMMARY.to_dict())


def _sparse_file(directory, name: str, size: int) -> str:
    path = os.path.join(str(directory), name)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


def _claude_client(text: str) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(
        return_value=SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])
    )
    return client


def _fake_subprocess(duration: float, created: list[str]):
    """Stand in for ffprobe (returns metadata) and ffmpeg (writes the chunk)."""

    def run(cmd, **kwargs):
        if os.path.basename(cmd[0]) == "ffprobe":
            return MagicMock(
                stdout=json.dumps(
                    {
                        "format": {"duration": str(duration), "format_name": "mp3", "bit_rate": "128000"},
                        "streams": [{"codec_type": "audio", "channels": 1, "sample_rate": "44100"}],
                    }
                )
            )
        with open(cmd[-1], "wb") as f:
            f.write(b"chunk")
        created.append(cmd[-1])
        return MagicMock(stdout="")

    return run


def _which(name: str) -> str:
    return f"/usr/bin/{name}"


class TestRunPipelineEndToEnd:
    """Full runs with only the process and network edges faked."""

    async def test_dry_run_small_file(self, tmp_path, httpx_mock):
        audio = _sparse_file(tmp_path, "note.mp3", 10 * MIB)
        httpx_mock.add_response(url=GROQ_URL, method="POST", text="we planned the week")
        created: list[str] = []

        with (
            patch("shutil.which", side_effect=_which),
            patch("subprocess.run", side_effect=_fake_subprocess(150.0, created)),
            patch(
                "voice_to_notion.summarization.claude.AsyncAnthropic",
                return_value=_claude_client(SUMMARY_JSON),
            ),
        ):
            outcome = await run_pipeline(PipelineRequest(audio_file=audio, dry_run=True), CONFIG)

        assert created == []
        assert outcome.transcription == TranscriptionResult(
            text="we planned the week", duration=150.0, provider="groq"
        )
        assert outcome.summary == SUMMARY
        assert outcome.notion is None
        assert outcome.preview.startswith("# Weekly planning\n")
        assert "Duration: 3 minutes | Provider: groq" in outcome.preview
        assert os.path.exists(audio)

        payload = outcome.to_json_dict()
        assert payload["success"] is True
        assert payload["audioFile"] == audio
        assert "notion" not in payload

    async def test_large_file_split_transcribed_in_order_and_cleaned(self, tmp_path, httpx_mock):
        audio = _sparse_file(tmp_path, "long.mp3", 60 * MIB)
        for text in ("part one", "part two", "part three"):
            httpx_mock.add_response(url=GROQ_URL, method="POST", text=text)
        created: list[str] = []

        with (
            patch("shutil.which", side_effect=_which),
            patch("subprocess.run", side_effect=_fake_subprocess(60.0, created)),
            patch(
                "voice_to_notion.summarization.claude.AsyncAnthropic",
                return_value=_claude_client(SUMMARY_JSON),
            ),
        ):
            outcome = await run_pipeline(PipelineRequest(audio_file=audio, dry_run=True), CONFIG)

        assert len(created) == 3
        assert outcome.transcription.text == "part one part two part three"
        assert outcome.transcription.duration == 60.0
        assert all(not os.path.exists(path) for path in created)
        assert not os.path.exists(os.path.dirname(created[0]))
        assert os.path.exists(audio)


class TestRunPipelineSteps:
    """Step sequencing with each step mocked."""

    @pytest.fixture
    def audio_file(self, tmp_path) -> str:
        return _sparse_file(tmp_path, "note.mp3", 1024)

    @pytest.fixture
    def mocks(self, audio_file):
        audio = AudioProcessingResult(
            metadata=AudioMetadata(
                duration=30.0, format="mp3", bitrate=0, channels=1, sample_rate=44100, file_size=1024
            ),
            chunks=[AudioChunk(path=audio_file, index=0, start=0.0, end=30.0)],
        )
        transcript = TranscriptionResult(text="hello", duration=30.0, provider="groq")
        page = NotionPageResult(page_id="p1", url="https://notion.so/p1")
        with (
            patch("voice_to_notion.pipeline.process_audio", new=AsyncMock(return_value=audio)) as process,
            patch("voice_to_notion.pipeline.transcribe", new=AsyncMock(return_value=transcript)) as transcribe,
            patch("voice_to_notion.pipeline.summarize", new=AsyncMock(return_value=SUMMARY)) as summarize,
            patch("voice_to_notion.pipeline.publish", new=AsyncMock(return_value=page)) as publish,
            patch("voice_to_notion.pipeline.cleanup") as cleanup,
        ):
            yield SimpleNamespace(
                process=process,
                transcribe=transcribe,
                summarize=summarize,
                publish=publish,
                cleanup=cleanup,
                audio=audio,
                transcript=transcript,
                page=page,
            )

    async def test_live_run_publishes_to_default_database(self, audio_file, mocks):
        outcome = await run_pipeline(PipelineRequest(audio_file=audio_file), CONFIG)

        mocks.publish.assert_awaited_once_with("secret_notion", "db-default", SUMMARY, mocks.transcript)
        assert outcome.notion == mocks.page
        assert outcome.preview is None
        assert outcome.to_json_dict()["notion"] == {"pageId": "p1", "url": "https://notion.so/p1"}
        assert set(outcome.step_durations_ms) == {"audio", "transcription", "summarization", "notion"}

    async def test_database_override(self, audio_file, mocks):
        await run_pipeline(PipelineRequest(audio_file=audio_file, database_id="db-override"), CONFIG)
        assert mocks.publish.await_args.args[1] == "db-override"

    async def test_title_override_replaces_generated_title(self, audio_file, mocks):
        outcome = await run_pipeline(
            PipelineRequest(audio_file=audio_file, title="My title", dry_run=True), CONFIG
        )

        assert outcome.summary.title == "My title"
        assert outcome.summary.summary == SUMMARY.summary
        assert outcome.preview.startswith("# My title")
        mocks.publish.assert_not_awaited()

    async def test_provider_passed_to_transcription(self, audio_file, mocks):
        config = Config(**{**CONFIG.__dict__, "openai_api_key": "sk"})
        await run_pipeline(PipelineRequest(audio_file=audio_file, provider="openai"), config)

        assert mocks.transcribe.await_args.args[2] == "openai"
        assert mocks.process.await_args.args[1] == 25 * MIB

    async def test_cleanup_runs_when_transcription_fails(self, audio_file, mocks):
        mocks.transcribe.side_effect = TranscriptionAPIError("Groq", ValueError("down"))

        with pytest.raises(TranscriptionAPIError):
            await run_pipeline(PipelineRequest(audio_file=audio_file), CONFIG)

        mocks.cleanup.assert_called_once_with(mocks.audio.chunks)
        mocks.summarize.assert_not_awaited()

    async def test_missing_file_raises_before_processing(self, tmp_path, mocks):
        with pytest.raises(AudioFileNotFoundError):
            await run_pipeline(PipelineRequest(audio_file=str(tmp_path / "nope.mp3")), CONFIG)
        mocks.process.assert_not_awaited()

    async def test_no_provider_key(self, audio_file, mocks):
        config = Config(anthropic_api_key="a", notion_api_key="n", notion_database_id="d")
        with pytest.raises(MissingProviderKeyError):
            await run_pipeline(PipelineRequest(audio_file=audio_file), config)
