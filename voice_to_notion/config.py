"""Environment configuration loading and provider resolution.

Reads configuration from environment variables:
    ANTHROPIC_API_KEY, NOTION_API_KEY, NOTION_DATABASE_ID (required)
    GROQ_API_KEY, OPENAI_API_KEY (at least one for transcription)
    TRANSCRIPTION_PROVIDER, GROQ_MAX_FILE_SIZE_MB, ANTHROPIC_MODEL,
    VOICE_TO_NOTION_CACHE_DIR (optional)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from voice_to_notion.utils.errors import (
    ConfigError,
    MissingEnvVarError,
    MissingProviderKeyError,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("groq", "openai")
DEFAULT_PROVIDER = "groq"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_CACHE_DIR = ".test-cache"

REQUIRED_ENV_VARS = ("ANTHROPIC_API_KEY", "NOTION_API_KEY", "NOTION_DATABASE_ID")


@dataclass(frozen=True)
class Config:
    """Validated environment configuration for one run."""

    anthropic_api_key: str = ""
    notion_api_key: str = ""
    notion_database_id: str = ""
    groq_api_key: str | None = None
    openai_api_key: str | None = None
    transcription_provider: str | None = None
    groq_max_file_size_mb: str | None = None
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    cache_dir: str = DEFAULT_CACHE_DIR

    def api_key_for(self, provider: str) -> str | None:
        """Return the configured API key for a transcription provider."""
        if provider == "groq":
            return self.groq_api_key
        if provider == "openai":
            return self.openai_api_key
        return None


def _get(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name, "").strip()
    return value or None


def load_config(
    environ: Mapping[str, str] | None = None,
    required: Sequence[str] = REQUIRED_ENV_VARS,
) -> Config:
    """Build a Config from the environment.

    Args:
        environ: Mapping to read from. Defaults to os.environ.
        required: Variables that must be set and non-empty. The harness
            narrows this to what a single step needs.

    Returns:
        A frozen Config.

    Raises:
        MissingEnvVarError: For the first required variable that is unset.
    """
    env = os.environ if environ is None else environ

    for name in required:
        if _get(env, name) is None:
            raise MissingEnvVarError(name)

    return Config(
        anthropic_api_key=_get(env, "ANTHROPIC_API_KEY") or "",
        notion_api_key=_get(env, "NOTION_API_KEY") or "",
        notion_database_id=_get(env, "NOTION_DATABASE_ID") or "",
        groq_api_key=_get(env, "GROQ_API_KEY"),
        openai_api_key=_get(env, "OPENAI_API_KEY"),
        transcription_provider=_get(env, "TRANSCRIPTION_PROVIDER"),
        groq_max_file_size_mb=_get(env, "GROQ_MAX_FILE_SIZE_MB"),
        anthropic_model=_get(env, "ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL,
        cache_dir=_get(env, "VOICE_TO_NOTION_CACHE_DIR") or DEFAULT_CACHE_DIR,
    )


def resolve_provider(config: Config, requested: str | None = None) -> str:
    """Pick the transcription provider for this run.

    The candidate is the requested provider, else TRANSCRIPTION_PROVIDER,
    else groq. A candidate without an API key falls back to the other
    provider when that one has a key.

    Raises:
        ConfigError: If the candidate is not a known provider.
        MissingProviderKeyError: If neither the candidate nor the
            fallback has an API key.
    """
    candidate = (requested or config.transcription_provider or DEFAULT_PROVIDER).lower()
    if candidate not in PROVIDERS:
        raise ConfigError(
            f"Unknown transcription provider: {candidate}. "
            f"Must be one of: {', '.join(PROVIDERS)}"
        )

    if config.api_key_for(candidate):
        return candidate

    fallback = "openai" if candidate == "groq" else "groq"
    if config.api_key_for(fallback):
        logger.warning(
            "No API key for %s, falling back to %s",
            candidate,
            fallback,
            extra={"provider": fallback},
        )
        return fallback

    raise MissingProviderKeyError(candidate)
