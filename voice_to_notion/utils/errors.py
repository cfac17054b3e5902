"""Custom exception hierarchy for the voice-to-notion pipeline.

All typed failures inherit from PipelineError and carry a stable exit
code and category. Exit code ranges are consumed by automation callers
and must not be renumbered:

    0       success
    1-9     input errors (invalid args, file not found)
    10-19   config errors (missing env vars, missing provider key)
    20-29   transcription errors
    30-39   summarization errors
    40-49   notion errors
    50-59   processing errors (ffmpeg)
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all typed pipeline errors."""

    def __init__(self, message: str, exit_code: int, category: str) -> None:
        self.message = message
        self.exit_code = exit_code
        self.category = category
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        return {
            "error": self.message,
            "category": self.category,
            "exit_code": self.exit_code,
        }


# -- Input errors (1-9) --


class InputError(PipelineError):
    """Raised for invalid user input."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message, exit_code, "input")


class AudioFileNotFoundError(InputError):
    """Raised when the audio file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}", 2)


class InvalidArgumentError(InputError):
    """Raised for an invalid command-line argument."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 3)


# -- Config errors (10-19) --


class ConfigError(PipelineError):
    """Raised when the environment configuration is invalid."""

    def __init__(self, message: str, exit_code: int = 10) -> None:
        super().__init__(message, exit_code, "config")


class MissingEnvVarError(ConfigError):
    """Raised when a required environment variable is unset or empty."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(
            f"Missing required environment variable: {var_name}", 11
        )


class MissingProviderKeyError(ConfigError):
    """Raised when the selected transcription provider has no API key."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"No API key found for {provider}. "
            f"Set {provider.upper()}_API_KEY environment variable.",
            12,
        )


# -- Transcription errors (20-29) --


class TranscriptionError(PipelineError):
    """Raised when speech-to-text fails."""

    def __init__(self, message: str, exit_code: int = 20) -> None:
        super().__init__(message, exit_code, "transcription")


class TranscriptionAPIError(TranscriptionError):
    """Raised when the provider API keeps failing after retries."""

    def __init__(self, provider: str, original: BaseException) -> None:
        self.provider = provider
        self.original = original
        super().__init__(f"{provider} transcription failed: {original}", 21)


class TranscriptionFileTooLargeError(TranscriptionError):
    """Raised when the provider rejects an audio file for its size."""

    def __init__(self, file_size: int, max_size: int) -> None:
        self.file_size = file_size
        self.max_size = max_size
        super().__init__(
            f"Audio file too large ({round(file_size / 1024 / 1024)}MB). "
            f"Maximum size is {round(max_size / 1024 / 1024)}MB.",
            22,
        )


# -- Summarization errors (30-39) --


class SummarizationError(PipelineError):
    """Raised when transcript summarization fails."""

    def __init__(self, message: str, exit_code: int = 30) -> None:
        super().__init__(message, exit_code, "summarization")


class SummarizationAPIError(SummarizationError):
    """Raised when the Claude API keeps failing after retries."""

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(f"Claude summarization failed: {original}", 31)


class InvalidSummarizationResponseError(SummarizationError):
    """Raised when the model response does not match the JSON contract."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid summarization response: {message}", 32)


# -- Notion errors (40-49) --


class NotionError(PipelineError):
    """Raised when publishing to Notion fails."""

    def __init__(self, message: str, exit_code: int = 40) -> None:
        super().__init__(message, exit_code, "notion")


class NotionAPIError(NotionError):
    """Raised when the Notion API keeps failing after retries."""

    def __init__(self, original: BaseException) -> None:
        self.original = original
        super().__init__(f"Notion API error: {original}", 41)


class NotionDatabaseNotFoundError(NotionError):
    """Raised when the target database is missing or not shared."""

    def __init__(self, database_id: str) -> None:
        self.database_id = database_id
        super().__init__(f"Notion database not found: {database_id}", 42)


# -- Processing errors (50-59) --


class ProcessingError(PipelineError):
    """Raised when local media processing fails."""

    def __init__(self, message: str, exit_code: int = 50) -> None:
        super().__init__(message, exit_code, "processing")


class FFmpegNotFoundError(ProcessingError):
    """Raised when ffmpeg/ffprobe is not installed."""

    def __init__(self) -> None:
        super().__init__(
            "FFmpeg not found. Please install FFmpeg: brew install ffmpeg "
            "(macOS) or apt install ffmpeg (Linux)",
            51,
        )


class FFmpegError(ProcessingError):
    """Raised when an ffmpeg or ffprobe invocation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(f"FFmpeg error: {message}", 52)


# -- Untyped transport errors --


class ServiceResponseError(Exception):
    """Raised by HTTP clients for a non-2xx response.

    Not a PipelineError. The message carries the HTTP status for the
    retry predicates; dispatch code converts it to a typed error once
    retries are exhausted.
    """

    def __init__(
        self,
        service: str,
        status_code: int,
        detail: str = "",
        code: str | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.detail = detail
        self.code = code
        message = f"{service} returned HTTP {status_code}"
        if code:
            message += f" ({code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
