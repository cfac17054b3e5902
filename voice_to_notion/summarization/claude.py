"""Claude summarization of voice note transcripts.

Only the API call is retried. A response that breaks the JSON contract
fails immediately with InvalidSummarizationResponseError.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from anthropic import AsyncAnthropic

from voice_to_notion.config import DEFAULT_ANTHROPIC_MODEL
from voice_to_notion.models import SummarizationResult
from voice_to_notion.utils.errors import (
    InvalidSummarizationResponseError,
    SummarizationAPIError,
)
from voice_to_notion.utils.retry import is_transient_error, retry

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
MAX_TOKENS = 1024

SYSTEM_PROMPT = """You are an expert at analyzing voice note transcriptions and extracting key information.

Your task is to analyze the provided transcription and return a structured JSON response with:
1. A concise, descriptive title (5-10 words)
2. A brief summary (2-3 sentences)
3. Main points or key topics discussed (3-7 bullet points)
4. Any action items or follow-ups mentioned

Respond ONLY with valid JSON in this exact format:
{
  "title": "string",
  "summary": "string",
  "main_points": ["string", "string", ...],
  "action_items": ["string", "string", ...]
}

Guidelines:
- The title should capture the main topic or purpose of the voice note
- The summary should be informative but concise
- Main points should be specific and actionable where applicable
- Action items should include any tasks, deadlines, or follow-ups mentioned
- If no action items are mentioned, return an empty array
- Keep all text clear and professional"""

USER_PROMPT_TEMPLATE = """Please analyze this voice note transcription and provide a structured summary:

<transcription>
{transcription}
</transcription>

Remember to respond with valid JSON only."""

_OPENING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?\s*```$")


def build_user_prompt(transcription: str) -> str:
    return USER_PROMPT_TEMPLATE.format(transcription=transcription)


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _OPENING_FENCE.sub("", stripped, count=1)
        stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def parse_summary_response(text: str) -> SummarizationResult:
    """Parse and validate the model's JSON reply.

    Raises:
        InvalidSummarizationResponseError: If the text is not a JSON object
            with string title/summary and string-list main_points and
            action_items.
    """
    json_text = strip_code_fence(text)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as exc:
        raise InvalidSummarizationResponseError(
            f"Failed to parse JSON response: {text[:100]}"
        ) from exc

    if not isinstance(data, dict):
        raise InvalidSummarizationResponseError("Response is not a JSON object")

    if (
        not isinstance(data.get("title"), str)
        or not isinstance(data.get("summary"), str)
        or not _is_string_list(data.get("main_points"))
        or not _is_string_list(data.get("action_items"))
    ):
        raise InvalidSummarizationResponseError("Response missing required fields")

    return SummarizationResult(
        title=data["title"],
        summary=data["summary"],
        main_points=list(data["main_points"]),
        action_items=list(data["action_items"]),
    )


def _extract_text(response: Any) -> str:
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text
    raise InvalidSummarizationResponseError("No text response from Claude")


async def summarize(
    api_key: str,
    transcription: str,
    *,
    model: str = DEFAULT_ANTHROPIC_MODEL,
    client: AsyncAnthropic | None = None,
) -> SummarizationResult:
    """Summarize a transcript into title, summary, points and actions.

    Args:
        api_key: Anthropic API key.
        transcription: Full transcript text.
        model: Claude model name.
        client: Pre-built client, mainly for tests.

    Returns:
        A validated SummarizationResult.

    Raises:
        SummarizationAPIError: If the API call still fails after retries.
        InvalidSummarizationResponseError: If the reply breaks the contract.
    """
    logger.debug("Summarizing transcription (%d characters)", len(transcription))

    if client is None:
        # Retries are owned by retry() below
        client = AsyncAnthropic(api_key=api_key, max_retries=0)

    async def _create_message() -> Any:
        return await client.messages.create(
            model=model,
            max_tokens=MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[
                {"role": "user", "content": build_user_prompt(transcription)},
            ],
        )

    try:
        response = await retry(
            _create_message,
            max_attempts=MAX_ATTEMPTS,
            is_retryable=is_transient_error,
            description="claude summarization",
        )
    except Exception as exc:
        raise SummarizationAPIError(exc) from exc

    text = _extract_text(response).strip()
    logger.debug("Claude response: %s...", text[:200])

    result = parse_summary_response(text)
    logger.debug("Summary generated: %r", result.title)
    return result
