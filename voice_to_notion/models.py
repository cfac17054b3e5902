"""Data models passed between pipeline steps.

Every model round-trips through plain dicts so step outputs can be
cached as JSON and emitted in the --json result.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class AudioMetadata:
    """Probed properties of a source audio file."""

    duration: float
    format: str
    bitrate: int
    channels: int
    sample_rate: int
    file_size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AudioMetadata:
        return cls(
            duration=float(data["duration"]),
            format=str(data["format"]),
            bitrate=int(data["bitrate"]),
            channels=int(data["channels"]),
            sample_rate=int(data["sample_rate"]),
            file_size=int(data["file_size"]),
        )


@dataclass(frozen=True)
class AudioChunk:
    """A contiguous time range of audio stored at path."""

    path: str
    index: int
    start: float
    end: float

    @property
    def span(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AudioChunk:
        return cls(
            path=str(data["path"]),
            index=int(data["index"]),
            start=float(data["start"]),
            end=float(data["end"]),
        )


@dataclass(frozen=True)
class AudioProcessingResult:
    """Metadata plus the chunks to transcribe for one audio file."""

    metadata: AudioMetadata
    chunks: list[AudioChunk]

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AudioProcessingResult:
        return cls(
            metadata=AudioMetadata.from_dict(data["metadata"]),
            chunks=[AudioChunk.from_dict(item) for item in data["chunks"]],
        )


@dataclass(frozen=True)
class TranscriptionResult:
    """Concatenated transcript for all chunks of one audio input."""

    text: str
    duration: float
    provider: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptionResult:
        return cls(
            text=str(data["text"]),
            duration=float(data["duration"]),
            provider=str(data["provider"]),
        )


@dataclass(frozen=True)
class SummarizationResult:
    """Structured extraction from a transcript."""

    title: str
    summary: str
    main_points: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "main_points": list(self.main_points),
            "action_items": list(self.action_items),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SummarizationResult:
        return cls(
            title=str(data["title"]),
            summary=str(data["summary"]),
            main_points=[str(item) for item in data["main_points"]],
            action_items=[str(item) for item in data["action_items"]],
        )


@dataclass(frozen=True)
class NotionPageResult:
    """Identifiers of a created Notion page."""

    page_id: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        # camelCase matches the --json output contract
        return {"pageId": self.page_id, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotionPageResult:
        return cls(page_id=str(data["pageId"]), url=str(data["url"]))
