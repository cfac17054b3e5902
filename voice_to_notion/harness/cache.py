"""On-disk cache of step results.

One JSON file per step under the cache directory:
    {"timestamp": ..., "input": ..., "output": ..., "duration_ms": ...}

Entries are last-writer-wins. An entry that cannot be read or parsed is
treated as absent.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from voice_to_notion.config import DEFAULT_CACHE_DIR

logger = logging.getLogger(__name__)

STEPS = ("audio", "transcription", "summarization", "notion")

DISPLAY_TEXT_LIMIT = 500


@dataclass(frozen=True)
class CacheEntry:
    """A persisted step result with the input snapshot that produced it."""

    timestamp: str
    input: Any
    output: Any
    duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "input": self.input,
            "output": self.output,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            timestamp=str(data["timestamp"]),
            input=data["input"],
            output=data["output"],
            duration_ms=int(data["duration_ms"]),
        )


@dataclass(frozen=True)
class CacheListing:
    step: str
    path: str
    entry: CacheEntry | None


def _check_step(step: str) -> None:
    if step not in STEPS:
        raise ValueError(f"Unknown cache step: {step}. Use: {'|'.join(STEPS)}")


class StepCache:
    """Reads and writes step results under a single directory.

    Args:
        cache_dir: Directory holding the per-step JSON files. Relative
            paths resolve against the current working directory.
    """

    def __init__(self, cache_dir: str = DEFAULT_CACHE_DIR) -> None:
        self.cache_dir = os.path.abspath(cache_dir)

    def path_for(self, step: str) -> str:
        _check_step(step)
        return os.path.join(self.cache_dir, f"{step}.json")

    def read(self, step: str) -> CacheEntry | None:
        """Load the entry for a step, or None if absent or unreadable."""
        path = self.path_for(step)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return CacheEntry.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.debug("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

    def write(
        self, step: str, input: Any, output: Any, duration_ms: int
    ) -> CacheEntry:
        """Persist a step result, replacing any previous entry."""
        entry = CacheEntry(
            timestamp=datetime.now(UTC).isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
            input=input,
            output=output,
            duration_ms=duration_ms,
        )
        os.makedirs(self.cache_dir, exist_ok=True)
        with open(self.path_for(step), "w", encoding="utf-8") as f:
            json.dump(entry.to_dict(), f, indent=2, ensure_ascii=False)
        return entry

    def clear(self, step: str | None = None) -> list[str]:
        """Delete one step's entry or all entries.

        Returns:
            Names of the steps whose entries existed and were removed.
        """
        steps = (step,) if step is not None else STEPS
        cleared: list[str] = []
        for name in steps:
            path = self.path_for(name)
            if os.path.isfile(path):
                os.remove(path)
                cleared.append(name)
        return cleared

    def list(self) -> list[CacheListing]:
        return [
            CacheListing(step=step, path=self.path_for(step), entry=self.read(step))
            for step in STEPS
        ]

    def display_output(self, step: str) -> Any:
        """Return the cached output with long transcript text truncated."""
        entry = self.read(step)
        if entry is None:
            return None
        output = entry.output
        if isinstance(output, dict):
            text = output.get("text")
            if isinstance(text, str) and len(text) > DISPLAY_TEXT_LIMIT:
                output = {
                    **output,
                    "text": f"{text[:DISPLAY_TEXT_LIMIT]}... ({len(text)} chars total)",
                }
        return output
