"""Entry point: fetch the current list of recent high-scoring stories."""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from src.integrations.hackernews.client import create_client, fetch_backlog_ids
from src.integrations.hackernews.models import Item
from src.stories.search import SearchParams, SearchResult, search_recent_stories
from src.utils.config import Settings, get_settings
from src.utils.error_handling import SearchTimeoutError
from src.utils.logging_config import get_logger


@dataclass(frozen=True)
class StoryRecord:
    """What a list view needs to render one story.

    Attributes:
        id: Item id, stable across runs (use as list key)
        title: Story title
        url: Link target; the discussion page for text posts
    """

    id: int
    title: str
    url: str

    @classmethod
    def from_item(cls, item: Item) -> "StoryRecord":
        return cls(id=item.id, title=item.title or "", url=item.url or item.hn_url)


async def _run_search(
    client: httpx.AsyncClient, settings: Settings, now_ms: int
) -> SearchResult:
    candidate_ids = await fetch_backlog_ids(
        client, settings.HN_BACKLOG_ENDPOINT, settings=settings
    )
    return await search_recent_stories(
        client,
        candidate_ids,
        now_ms=now_ms,
        params=SearchParams.from_settings(settings),
        settings=settings,
    )


async def fetch_current_stories(
    *,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
    now_ms: Optional[int] = None,
) -> list[StoryRecord]:
    """Fetch the current story list.

    Captures the current time once, loads the backlog and runs the search
    under SEARCH_DEADLINE. Errors are never turned into a partial or empty
    list; the caller decides what to show.

    Args:
        settings: Settings to use (global settings if None)
        client: Open client to reuse; a new one is created and closed if None
        now_ms: Search start time in milliseconds (current time if None)

    Returns:
        At most MAX_VALID_STORIES stories in discovery order

    Raises:
        RemoteFetchError: A lookup failed
        InvalidResponseError: The API returned a malformed payload
        SearchTimeoutError: The search ran past SEARCH_DEADLINE
    """
    settings = settings or get_settings()
    logger = get_logger(__name__)
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    started = time.monotonic()
    try:
        if client is None:
            async with create_client(settings) as own_client:
                result = await _with_deadline(
                    _run_search(own_client, settings, now_ms), settings.SEARCH_DEADLINE
                )
        else:
            result = await _with_deadline(
                _run_search(client, settings, now_ms), settings.SEARCH_DEADLINE
            )
    except Exception:
        logger.error(
            "Story retrieval failed after %.2fs", time.monotonic() - started, exc_info=True
        )
        raise

    logger.info(
        "Retrieved %d stories in %.2fs (%d found, %d ids requested, stopped: %s)",
        len(result.stories),
        time.monotonic() - started,
        result.found,
        result.requested_ids,
        result.stopped_reason,
        extra={
            "extra_fields": {
                "stories": len(result.stories),
                "requested_ids": result.requested_ids,
                "stopped_reason": result.stopped_reason,
            }
        },
    )
    return [StoryRecord.from_item(item) for item in result.stories]


async def _with_deadline(coro, deadline: Optional[float]):
    if deadline is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=deadline)
    except asyncio.TimeoutError as e:
        raise SearchTimeoutError(
            f"Story search did not finish within {deadline:.1f}s", deadline=deadline
        ) from e
