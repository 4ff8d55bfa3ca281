"""Hacker News API client and item models."""

from src.integrations.hackernews.client import (
    create_client,
    fetch_backlog_ids,
    fetch_batch,
    fetch_item,
)
from src.integrations.hackernews.models import Item, ItemType

__all__ = [
    "create_client",
    "fetch_backlog_ids",
    "fetch_batch",
    "fetch_item",
    "Item",
    "ItemType",
]
