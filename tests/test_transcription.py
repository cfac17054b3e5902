"""Tests for Whisper engines, the ASR registry and chunk dispatch."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from voice_to_notion.asr import get_asr_engine, transcribe
from voice_to_notion.asr.interface import ASREngine
from voice_to_notion.asr.whisper import GroqWhisperEngine, OpenAIWhisperEngine
from voice_to_notion.config import Config
from voice_to_notion.models import AudioChunk
from voice_to_notion.utils.errors import (
    InvalidArgumentError,
    MissingProviderKeyError,
    ServiceResponseError,
    TranscriptionAPIError,
    TranscriptionFileTooLargeError,
)

GROQ_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
OPENAI_URL = "https://api.openai.com/v1/audio/transcriptions"


class FakeEngine(ASREngine):
    """Engine returning scripted results per audio path."""

    name = "groq"
    display_name = "Groq"

    def __init__(self, results: dict[str, list]) -> None:
        self.results = results
        self.calls: list[str] = []

    async def transcribe(self, audio_path: str) -> str:
        self.calls.append(audio_path)
        outcome = self.results[audio_path].pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def mock_sleep():
    with patch(
        "voice_to_notion.utils.retry.asyncio.sleep", new_callable=AsyncMock
    ) as sleep:
        yield sleep


@pytest.fixture
def audio_file(tmp_path) -> str:
    path = tmp_path / "note.mp3"
    path.write_bytes(b"ID3fakeaudio")
    return str(path)


def _chunks(count: int, span: float = 10.0) -> list[AudioChunk]:
    return [
        AudioChunk(path=f"/tmp/chunk_{i}.mp3", index=i, start=i * span, end=(i + 1) * span)
        for i in range(count)
    ]


class TestWhisperEngine:
    """Tests for the HTTP Whisper engines."""

    async def test_groq_posts_multipart_upload(self, httpx_mock, audio_file):
        httpx_mock.add_response(url=GROQ_URL, method="POST", text="  hello world \n")

        engine = GroqWhisperEngine(api_key="gsk-test")
        text = await engine.transcribe(audio_file)

        assert text == "hello world"
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer gsk-test"
        body = request.read()
        assert b"whisper-large-v3-turbo" in body
        assert b'name="response_format"' in body
        assert b'filename="note.mp3"' in body

    async def test_openai_model(self, httpx_mock, audio_file):
        httpx_mock.add_response(url=OPENAI_URL, method="POST", text="hi")

        engine = OpenAIWhisperEngine(api_key="sk-test")
        assert await engine.transcribe(audio_file) == "hi"
        assert b"whisper-1" in httpx_mock.get_request().read()

    async def test_error_response_carries_status(self, httpx_mock, audio_file):
        httpx_mock.add_response(
            url=GROQ_URL,
            method="POST",
            status_code=429,
            json={"error": {"message": "Rate limit reached"}},
        )

        engine = GroqWhisperEngine(api_key="gsk-test")
        with pytest.raises(ServiceResponseError) as exc_info:
            await engine.transcribe(audio_file)

        assert exc_info.value.status_code == 429
        assert str(exc_info.value) == "Groq returned HTTP 429: Rate limit reached"

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="api_key"):
            GroqWhisperEngine(api_key="")


class TestRegistry:
    """Tests for get_asr_engine()."""

    def test_known_providers(self):
        assert isinstance(get_asr_engine("groq", api_key="k"), GroqWhisperEngine)
        assert isinstance(get_asr_engine("openai", api_key="k"), OpenAIWhisperEngine)

    def test_unknown_provider(self):
        with pytest.raises(InvalidArgumentError, match="Available: groq, openai"):
            get_asr_engine("azure", api_key="k")


class TestTranscribeDispatch:
    """Tests for transcribe() across chunks."""

    async def test_texts_joined_in_index_order(self, mock_sleep):
        chunks = _chunks(3)
        engine = FakeEngine({c.path: [f" part {c.index} "] for c in chunks})
        config = Config(groq_api_key="gsk")

        result = await transcribe(config, list(reversed(chunks)), "groq", engine=engine)

        assert result.text == "part 0 part 1 part 2"
        assert engine.calls == [c.path for c in chunks]
        assert result.duration == 30.0
        assert result.provider == "groq"

    async def test_transient_chunk_failure_retried(self, mock_sleep):
        chunks = _chunks(2)
        engine = FakeEngine(
            {
                chunks[0].path: ["first"],
                chunks[1].path: [ServiceResponseError("Groq", 503, "overloaded"), "second"],
            }
        )

        result = await transcribe(Config(groq_api_key="gsk"), chunks, "groq", engine=engine)

        assert result.text == "first second"
        assert engine.calls.count(chunks[1].path) == 2
        assert mock_sleep.await_count == 1

    async def test_exhausted_retries_raise_api_error(self, mock_sleep):
        chunk = _chunks(1)[0]
        errors = [ServiceResponseError("Groq", 503, f"attempt {i}") for i in range(3)]
        engine = FakeEngine({chunk.path: list(errors)})

        with pytest.raises(TranscriptionAPIError) as exc_info:
            await transcribe(Config(groq_api_key="gsk"), [chunk], "groq", engine=engine)

        assert exc_info.value.exit_code == 21
        assert exc_info.value.__cause__ is errors[2]
        assert len(engine.calls) == 3

    async def test_permanent_error_not_retried(self, mock_sleep):
        chunk = _chunks(1)[0]
        engine = FakeEngine({chunk.path: [ServiceResponseError("Groq", 401, "Invalid API Key")]})

        with pytest.raises(TranscriptionAPIError, match="Groq transcription failed"):
            await transcribe(Config(groq_api_key="gsk"), [chunk], "groq", engine=engine)

        assert len(engine.calls) == 1
        mock_sleep.assert_not_awaited()

    async def test_payload_too_large(self, mock_sleep):
        chunk = _chunks(1)[0]
        engine = FakeEngine({chunk.path: [ServiceResponseError("Groq", 413, "Request Entity Too Large")]})

        with pytest.raises(TranscriptionFileTooLargeError) as exc_info:
            await transcribe(Config(groq_api_key="gsk"), [chunk], "groq", engine=engine)

        assert exc_info.value.exit_code == 22

    async def test_missing_key_for_explicit_provider(self):
        with pytest.raises(MissingProviderKeyError):
            await transcribe(Config(groq_api_key="gsk"), _chunks(1), "openai")

    async def test_later_chunks_not_sent_after_failure(self, mock_sleep):
        chunks = _chunks(2)
        engine = FakeEngine(
            {chunks[0].path: [ServiceResponseError("Groq", 400, "bad audio")], chunks[1].path: ["x"]}
        )

        with pytest.raises(TranscriptionAPIError):
            await transcribe(Config(groq_api_key="gsk"), chunks, "groq", engine=engine)

        assert chunks[1].path not in engine.calls

    async def test_builds_engine_from_config(self, httpx_mock, audio_file):
        httpx_mock.add_response(url=OPENAI_URL, method="POST", text="from openai")
        chunk = AudioChunk(path=audio_file, index=0, start=0.0, end=5.0)

        result = await transcribe(Config(openai_api_key="sk"), [chunk], "openai")

        assert result.text == "from openai"
        assert result.provider == "openai"
        assert httpx_mock.get_request().headers["Authorization"] == "Bearer sk"

    async def test_refused_connection_retried(self, httpx_mock, audio_file, mock_sleep):
        httpx_mock.add_exception(
            httpx.ConnectError("[Errno 111] Connection refused"), url=GROQ_URL
        )
        httpx_mock.add_response(url=GROQ_URL, method="POST", text="after reconnect")
        chunk = AudioChunk(path=audio_file, index=0, start=0.0, end=5.0)

        result = await transcribe(Config(groq_api_key="gsk"), [chunk], "groq")

        assert result.text == "after reconnect"
        assert len(httpx_mock.get_requests()) == 2
        assert mock_sleep.await_count == 1
