"""Story retrieval: filtering, adaptive search and the public entry point."""

from src.stories.filters import filter_valid_items, limit_results
from src.stories.search import SearchParams, SearchResult, search_recent_stories
from src.stories.service import StoryRecord, fetch_current_stories

__all__ = [
    "fetch_current_stories",
    "StoryRecord",
    "search_recent_stories",
    "SearchParams",
    "SearchResult",
    "filter_valid_items",
    "limit_results",
]
