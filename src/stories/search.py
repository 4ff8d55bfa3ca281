"""Adaptive search for recent high-scoring stories.

The API only hands out ids, so finding "good recent stories" means
fetching items one by one. The search runs in two phases:

1. Backlog scan: walk the newest-first candidate list in batches and keep
   the stories that pass the filter.
2. Descending scan: if the backlog did not yield enough and the data is
   not yet too old, fetch consecutive ids below the smallest candidate.
   These ids can resolve to comments, jobs etc., so only stories count.

Both phases stop as soon as a batch looks older than the cutoff. The
result-count target is only checked between batches, so a batch can
overshoot it; the final list is truncated afterwards. Batches run one
after another, which keeps at most one batch of lookups in flight.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import httpx

from src.integrations.hackernews.client import fetch_batch
from src.integrations.hackernews.models import Item, ItemType
from src.stories.filters import (
    AgeProbeMode,
    batch_age_probe,
    compute_cutoff,
    filter_valid_items,
    is_too_old,
    limit_results,
)
from src.utils.config import Settings, get_settings
from src.utils.error_handling import ErrorContext

logger = logging.getLogger(__name__)

STOP_TARGET_REACHED = "target_reached"
STOP_TOO_OLD = "too_old"
STOP_BACKLOG_EXHAUSTED = "backlog_exhausted"
STOP_ID_SPACE_EXHAUSTED = "id_space_exhausted"
STOP_BATCH_LIMIT = "batch_limit"


@dataclass(frozen=True)
class SearchParams:
    """Tuning knobs for one search.

    Attributes:
        batch_size: Ids fetched per batch
        max_results: Stories to collect before stopping; also the output cap
        min_score: Lowest accepted score
        max_age_hours: Recency window ending at search start
        story_type: Type required during the descending scan
        age_probe_mode: How a batch's age is measured ("oldest" or "last")
        max_scan_batches: Upper bound on descending-scan batches
    """

    batch_size: int = 40
    max_results: int = 20
    min_score: int = 70
    max_age_hours: float = 4
    story_type: str = ItemType.STORY.value
    age_probe_mode: AgeProbeMode = "oldest"
    max_scan_batches: int = 50

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SearchParams":
        settings = settings or get_settings()
        return cls(
            batch_size=settings.BATCH_SIZE,
            max_results=settings.MAX_VALID_STORIES,
            min_score=settings.MIN_SCORE,
            max_age_hours=settings.MAX_STORY_AGE_HOURS,
            story_type=settings.STORY_TYPE,
            age_probe_mode=settings.AGE_PROBE_MODE,
            max_scan_batches=settings.MAX_SCAN_BATCHES,
        )


@dataclass
class SearchResult:
    """Outcome of a search.

    Attributes:
        stories: Accepted stories, truncated to max_results, in discovery order
        found: Number of stories accepted before truncation
        backlog_batches: Batches fetched from the candidate list
        scan_batches: Batches fetched by the descending scan
        requested_ids: Total ids looked up
        stopped_reason: Why the search stopped
    """

    stories: list[Item] = field(default_factory=list)
    found: int = 0
    backlog_batches: int = 0
    scan_batches: int = 0
    requested_ids: int = 0
    stopped_reason: str = STOP_BACKLOG_EXHAUSTED


class _Accumulator:
    """Append-only list of accepted stories that refuses duplicate ids."""

    def __init__(self) -> None:
        self.items: list[Item] = []
        self._seen: set[int] = set()

    def extend(self, items: Sequence[Item]) -> int:
        added = 0
        for item in items:
            if item.id in self._seen:
                continue
            self._seen.add(item.id)
            self.items.append(item)
            added += 1
        return added

    def __len__(self) -> int:
        return len(self.items)


class _Search:
    """State of one running search. Not reusable."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        now_ms: int,
        params: SearchParams,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.params = params
        self.settings = settings
        self.cutoff_ms = compute_cutoff(now_ms, params.max_age_hours)
        # Start-of-search time can never be too old
        self.probe_s = now_ms // 1000
        self.accepted = _Accumulator()
        self.result = SearchResult()

    @property
    def target_reached(self) -> bool:
        return len(self.accepted) >= self.params.max_results

    @property
    def too_old(self) -> bool:
        return is_too_old(self.probe_s, self.cutoff_ms)

    async def _process_batch(self, ids: list[int], type_filter: Optional[str]) -> None:
        items = await fetch_batch(
            self.client, ids, max_batch_size=self.params.batch_size, settings=self.settings
        )
        self.result.requested_ids += len(ids)

        valid = filter_valid_items(
            items,
            min_score=self.params.min_score,
            cutoff_ms=self.cutoff_ms,
            type_filter=type_filter,
        )
        added = self.accepted.extend(valid)

        probe = batch_age_probe(items, self.params.age_probe_mode)
        if probe is not None:
            self.probe_s = probe

        logger.debug(
            "Batch %d..%d: %d/%d valid, %d kept, probe=%d",
            ids[0],
            ids[-1],
            len(valid),
            len(ids),
            added,
            self.probe_s,
        )

    async def scan_backlog(self, candidate_ids: Sequence[int]) -> str:
        """Walk the candidate list in consecutive windows.

        Runs at least one window. Stops after the last window, after a
        window that looks too old, or between windows once the target is
        reached.
        """
        position = 0
        while True:
            window = list(candidate_ids[position:position + self.params.batch_size])
            if not window:
                return STOP_BACKLOG_EXHAUSTED

            await self._process_batch(window, type_filter=None)
            self.result.backlog_batches += 1
            position += len(window)

            if position >= len(candidate_ids):
                return STOP_BACKLOG_EXHAUSTED
            if self.too_old:
                return STOP_TOO_OLD
            if self.target_reached:
                return STOP_TARGET_REACHED

    async def scan_descending(self, start_id: int) -> str:
        """Fetch consecutive ids downward from ``start_id``."""
        next_id = start_id
        while not self.target_reached and not self.too_old:
            if next_id < 1:
                return STOP_ID_SPACE_EXHAUSTED
            if self.result.scan_batches >= self.params.max_scan_batches:
                return STOP_BATCH_LIMIT

            lowest = max(next_id - self.params.batch_size, 0)
            ids = list(range(next_id, lowest, -1))
            next_id = lowest

            await self._process_batch(ids, type_filter=self.params.story_type)
            self.result.scan_batches += 1

        return STOP_TARGET_REACHED if self.target_reached else STOP_TOO_OLD

    async def run(self, candidate_ids: Sequence[int]) -> SearchResult:
        with ErrorContext("backlog_scan", candidates=len(candidate_ids)) as ctx:
            reason = await self.scan_backlog(candidate_ids)
            ctx.add_info("batches", self.result.backlog_batches)

        logger.info(
            "Backlog scan finished: %d stories from %d batches (%s)",
            len(self.accepted),
            self.result.backlog_batches,
            reason,
        )

        if self.target_reached:
            reason = STOP_TARGET_REACHED
        elif self.too_old:
            reason = STOP_TOO_OLD
        elif candidate_ids:
            start_id = min(candidate_ids) - 1
            logger.info(
                "Only %d/%d stories found, scanning ids below %d",
                len(self.accepted),
                self.params.max_results,
                start_id + 1,
            )
            with ErrorContext("descending_scan", start_id=start_id) as ctx:
                reason = await self.scan_descending(start_id)
                ctx.add_info("batches", self.result.scan_batches)

            logger.info(
                "Descending scan finished: %d stories after %d batches (%s)",
                len(self.accepted),
                self.result.scan_batches,
                reason,
            )

        self.result.found = len(self.accepted)
        self.result.stories = limit_results(self.accepted.items, self.params.max_results)
        self.result.stopped_reason = reason
        return self.result


async def search_recent_stories(
    client: httpx.AsyncClient,
    candidate_ids: Sequence[int],
    *,
    now_ms: int,
    params: Optional[SearchParams] = None,
    settings: Optional[Settings] = None,
) -> SearchResult:
    """Find recent high-scoring stories starting from a newest-first id list.

    Args:
        client: Client from ``create_client``
        candidate_ids: Newest-first candidate ids (read only)
        now_ms: Search start time in milliseconds; fixes the age cutoff
        params: Search parameters (from settings if None)
        settings: Settings for parameter defaults and lookup retries (global if None)

    Returns:
        SearchResult with at most ``params.max_results`` stories

    Raises:
        RemoteFetchError: A batch failed; nothing collected so far is returned
    """
    params = params or SearchParams.from_settings(settings)
    return await _Search(client, now_ms, params, settings).run(candidate_ids)
