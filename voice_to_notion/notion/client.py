"""Notion API client and voice note publication.

Pages are created with POST /v1/pages. Notion accepts at most 100
children per request, so any remaining blocks are appended to the new
page in batches of 100. The create request and every append are retried
separately, so a failed append never creates a second page.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from voice_to_notion.models import (
    NotionPageResult,
    SummarizationResult,
    TranscriptionResult,
)
from voice_to_notion.notion.blocks import (
    build_voice_note_page,
    render_preview,
    to_notion_blocks,
    to_notion_icon,
    to_notion_properties,
)
from voice_to_notion.utils.errors import (
    NotionAPIError,
    NotionDatabaseNotFoundError,
    ServiceResponseError,
)
from voice_to_notion.utils.retry import (
    is_database_not_found,
    is_transient_error,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
MAX_CHILDREN_PER_REQUEST = 100
MAX_ATTEMPTS = 3


def _is_retryable_publish_error(exc: BaseException) -> bool:
    # A missing database is a permanent misconfiguration
    if is_database_not_found(exc):
        return False
    return is_transient_error(exc)


class NotionClient:
    """Minimal async client for the Notion pages and blocks endpoints.

    Args:
        api_key: Notion integration token.
        base_url: API base URL (default production endpoint).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """Close the shared HTTP client and release connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> NotionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        response = await self._client.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            json=payload,
        )
        if response.is_success:
            return response.json()

        code: str | None = None
        detail = response.text.strip()[:500]
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            detail = body.get("message") or detail
        raise ServiceResponseError("Notion", response.status_code, detail, code=code)

    async def create_page(
        self,
        database_id: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]],
        icon: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a page in a database and attach all children.

        The create request and each append batch are retried on their own.

        Returns:
            The page object from the create response.

        Raises:
            ServiceResponseError: On a non-2xx response after retries.
            httpx.HTTPError: On transport failures after retries.
        """
        payload: dict[str, Any] = {
            "parent": {"database_id": database_id},
            "properties": properties,
            "children": children[:MAX_CHILDREN_PER_REQUEST],
        }
        if icon is not None:
            payload["icon"] = icon

        page = await self.post_page(payload)

        remaining = children[MAX_CHILDREN_PER_REQUEST:]
        page_id = page.get("id")
        while remaining and page_id:
            batch = remaining[:MAX_CHILDREN_PER_REQUEST]
            remaining = remaining[MAX_CHILDREN_PER_REQUEST:]
            await self.append_children(page_id, batch)

        return page

    @retry_with_backoff(
        max_attempts=MAX_ATTEMPTS, is_retryable=_is_retryable_publish_error
    )
    async def post_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a page from a complete request payload."""
        return await self._request("POST", "/pages", payload)

    @retry_with_backoff(
        max_attempts=MAX_ATTEMPTS, is_retryable=_is_retryable_publish_error
    )
    async def append_children(
        self, block_id: str, children: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Append up to 100 child blocks to an existing block or page."""
        return await self._request(
            "PATCH", f"/blocks/{block_id}/children", {"children": children}
        )


def page_url(page_id: str) -> str:
    return f"https://notion.so/{page_id.replace('-', '')}"


async def publish(
    api_key: str,
    database_id: str,
    summary: SummarizationResult,
    transcription: TranscriptionResult,
    client: NotionClient | None = None,
) -> NotionPageResult:
    """Create the voice note page in a Notion database.

    Args:
        api_key: Notion integration token.
        database_id: Target database identifier.
        summary: Validated summarization result.
        transcription: Transcript shown in the collapsible section.
        client: Pre-built client, mainly for tests. Closed by the caller.

    Returns:
        NotionPageResult with the page id and canonical URL.

    Raises:
        NotionDatabaseNotFoundError: If the database does not exist or is
            not shared with the integration.
        NotionAPIError: On any other failure after retries.
    """
    logger.debug("Creating Notion page: %r", summary.title)

    page = build_voice_note_page(summary, transcription)
    properties = to_notion_properties(page)
    children = to_notion_blocks(page)
    icon = to_notion_icon(page)

    owns_client = client is None
    notion = client or NotionClient(api_key)
    try:
        response = await notion.create_page(
            database_id, properties, children, icon=icon
        )
    except Exception as exc:
        if is_database_not_found(exc):
            raise NotionDatabaseNotFoundError(database_id) from exc
        raise NotionAPIError(exc) from exc
    finally:
        if owns_client:
            await notion.close()

    page_id = response.get("id") if isinstance(response, dict) else None
    if not page_id:
        raise NotionAPIError(ValueError("No page ID in response"))

    url = response.get("url") or page_url(page_id)
    logger.debug("Page created: %s", url)
    return NotionPageResult(page_id=page_id, url=url)


def preview(
    summary: SummarizationResult, transcription: TranscriptionResult
) -> str:
    """Render the dry-run preview of the page publish() would create."""
    return render_preview(build_voice_note_page(summary, transcription))
