"""Structured JSON logger for the voice-to-notion CLI.

Outputs one JSON object per record to stderr so stdout stays free for
the preview text and the --json result.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TextIO

PACKAGE_LOGGER = "voice_to_notion"

EXTRA_FIELDS = (
    "step",
    "provider",
    "attempt",
    "delay_seconds",
    "chunk_index",
    "duration_ms",
    "error",
    "category",
    "exit_code",
)


@dataclass(frozen=True)
class LogConfig:
    """Logging configuration applied once per run."""

    verbose: bool = False


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry, ensure_ascii=False)


def configure_logging(
    config: LogConfig, stream: TextIO | None = None
) -> logging.Logger:
    """Install the JSON handler on the package logger.

    Calling this again replaces the previous handler, so a run's level
    never leaks into the next one.

    Args:
        config: Verbosity settings. Verbose enables DEBUG records.
        stream: Output stream, stderr by default.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if config.verbose else logging.INFO)
    logger.propagate = False
    return logger
