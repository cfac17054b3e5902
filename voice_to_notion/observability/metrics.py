"""Step timing and per-run metrics.

StageTimer measures wall-clock duration of a pipeline step with a
monotonic clock; log_run_metrics() emits one structured record per run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    """Metrics collected for one pipeline run."""

    audio_file: str
    status: str
    provider: str | None = None
    audio_duration_seconds: float = 0.0
    audio_size_bytes: int = 0
    chunk_count: int = 0
    transcript_characters: int = 0
    dry_run: bool = False
    step_durations_ms: dict[str, int] = field(default_factory=dict)
    error_category: str | None = None
    exit_code: int = 0


class StageTimer:
    """Context manager that records wall-clock duration of a step.

    Usage:
        timer = StageTimer("transcription")
        with timer:
            await do_work()
        print(timer.duration_ms)
    """

    def __init__(self, stage_name: str, timings: dict[str, int] | None = None) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    @property
    def duration_ms(self) -> int:
        return round(self.duration_seconds * 1000)

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)
        if self._timings is not None:
            # Failed steps are recorded under a sentinel key
            key = self.stage_name if exc_type is None else f"_{self.stage_name}_failed"
            self._timings[key] = self.duration_ms


def log_run_metrics(metrics: RunMetrics) -> None:
    """Emit run metrics as a single structured log record."""
    logger.info(
        "Run metrics: %s",
        asdict(metrics),
        extra={"duration_ms": sum(metrics.step_durations_ms.values())},
    )
