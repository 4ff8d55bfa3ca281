"""Hacker News item API client.

Thin async wrappers over the Firebase-backed API:

- ``/<list>.json`` returns a newest-first array of item ids
- ``/item/<id>.json`` returns one item object, or ``null`` if there is none

Every function takes an ``httpx.AsyncClient`` built by ``create_client``
so callers control connection reuse and timeouts.
"""

import asyncio
import logging
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from src.integrations.hackernews.models import Item
from src.utils.config import Settings, get_settings
from src.utils.error_handling import (
    InvalidResponseError,
    RemoteFetchError,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)


def create_client(settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Build an HTTP client pointed at the configured API.

    Args:
        settings: Settings to use (global settings if None)

    Returns:
        An unopened ``httpx.AsyncClient``; use it with ``async with``
    """
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.HN_API_BASE_URL,
        timeout=settings.API_TIMEOUT,
        headers={"User-Agent": settings.APP_NAME},
    )


async def _get_json(client: httpx.AsyncClient, path: str, item_id: Optional[int] = None):
    """GET a path and decode the JSON body, mapping failures to our errors."""
    url = str(client.base_url.join(path))

    try:
        response = await client.get(path)
    except httpx.TransportError as e:
        raise RemoteFetchError(
            f"Request to {url} failed: {e!r}", url=url, item_id=item_id
        ) from e

    if not response.is_success:
        raise RemoteFetchError(
            f"HTTP error fetching {url}",
            status_code=response.status_code,
            url=url,
            item_id=item_id,
        )

    try:
        return response.json()
    except ValueError as e:
        raise InvalidResponseError(f"Response from {url} is not JSON", url=url) from e


@retry_with_backoff()
async def fetch_item(
    client: httpx.AsyncClient, item_id: int, *, settings: Optional[Settings] = None
) -> Optional[Item]:
    """Fetch a single item by id.

    Args:
        client: Client from ``create_client``
        item_id: Item id
        settings: Settings for retries (global settings if None)

    Returns:
        The parsed Item, or None when the API has no such item

    Raises:
        RemoteFetchError: Non-success status or transport failure
        InvalidResponseError: Payload is neither an item object nor null
    """
    data = await _get_json(client, f"item/{item_id}.json", item_id=item_id)

    if data is None:
        return None

    if not isinstance(data, dict):
        raise InvalidResponseError(
            f"Item {item_id} payload is {type(data).__name__}, expected object"
        )

    try:
        return Item.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(f"Item {item_id} payload is malformed: {e}") from e


@retry_with_backoff()
async def fetch_backlog_ids(
    client: httpx.AsyncClient,
    endpoint: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
) -> list[int]:
    """Fetch the newest-first list of candidate item ids.

    Args:
        client: Client from ``create_client``
        endpoint: List name, e.g. "newstories" (HN_BACKLOG_ENDPOINT if None)
        settings: Settings for the default endpoint and retries (global if None)

    Returns:
        List of item ids in the order the API returned them

    Raises:
        RemoteFetchError: Non-success status or transport failure
        InvalidResponseError: Payload is not a list of integers
    """
    endpoint = endpoint or (settings or get_settings()).HN_BACKLOG_ENDPOINT
    data = await _get_json(client, f"{endpoint}.json")

    if data is None:
        return []

    if not isinstance(data, list) or not all(
        isinstance(i, int) and not isinstance(i, bool) for i in data
    ):
        raise InvalidResponseError(f"Backlog '{endpoint}' is not a list of item ids")

    logger.debug("Fetched %d candidate ids from '%s'", len(data), endpoint)
    return data


async def fetch_batch(
    client: httpx.AsyncClient,
    item_ids: Sequence[int],
    *,
    max_batch_size: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> list[Optional[Item]]:
    """Fetch several items concurrently and wait for all of them.

    Results come back in the same order as ``item_ids``. The batch is
    all-or-nothing: the first failed lookup cancels the rest and its
    error propagates.

    Args:
        client: Client from ``create_client``
        item_ids: Ids to fetch
        max_batch_size: Largest allowed batch (BATCH_SIZE if None)
        settings: Settings for the batch limit and retries (global if None)

    Returns:
        One entry per id: the Item, or None if the API had no such item

    Raises:
        ValueError: More ids than the batch size allows
        RemoteFetchError: Any single lookup failed
    """
    settings = settings or get_settings()
    limit = max_batch_size if max_batch_size is not None else settings.BATCH_SIZE
    if len(item_ids) > limit:
        raise ValueError(f"Batch of {len(item_ids)} ids exceeds the limit of {limit}")

    if not item_ids:
        return []

    tasks = [
        asyncio.ensure_future(fetch_item(client, item_id, settings=settings))
        for item_id in item_ids
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
