"""Pure filtering helpers used by the story search.

All timestamps follow the API: item ``time`` is in seconds, while "now"
and cutoffs are in milliseconds. No function here reads the clock.
"""

from typing import Literal, Optional, Sequence

from src.integrations.hackernews.models import Item

MILLIS_PER_SECOND = 1000
MILLIS_PER_HOUR = 60 * 60 * MILLIS_PER_SECOND

AgeProbeMode = Literal["oldest", "last"]


def compute_cutoff(now_ms: int, max_age_hours: float) -> int:
    """Oldest acceptable creation time, in milliseconds."""
    return int(now_ms - max_age_hours * MILLIS_PER_HOUR)


def is_too_old(time_s: int, cutoff_ms: int) -> bool:
    """True when a timestamp in seconds falls before the cutoff."""
    return time_s * MILLIS_PER_SECOND < cutoff_ms


def is_valid_item(
    item: Optional[Item],
    *,
    min_score: int,
    cutoff_ms: int,
    type_filter: Optional[str] = None,
) -> bool:
    """Check one item against the score, age and type constraints.

    Missing items, deleted or dead items, and items without a score or
    time never qualify.
    """
    if item is None or item.deleted or item.dead:
        return False
    if type_filter and item.type != type_filter:
        return False
    if item.score is None or item.score < min_score:
        return False
    if item.time is None or is_too_old(item.time, cutoff_ms):
        return False
    return True


def filter_valid_items(
    items: Sequence[Optional[Item]],
    *,
    min_score: int,
    cutoff_ms: int,
    type_filter: Optional[str] = None,
) -> list[Item]:
    """Keep the items that pass every active constraint, in input order.

    Args:
        items: Fetched items; None entries stand for ids with no item
        min_score: Lowest accepted score (inclusive)
        cutoff_ms: Oldest accepted creation time in milliseconds (inclusive)
        type_filter: Required item type, or None/"" to accept any type

    Returns:
        The qualifying items
    """
    return [
        item
        for item in items
        if is_valid_item(
            item, min_score=min_score, cutoff_ms=cutoff_ms, type_filter=type_filter
        )
    ]


def limit_results(items: Sequence[Item], max_items: int) -> list[Item]:
    """First ``max_items`` items, order untouched."""
    return list(items[:max_items])


def batch_age_probe(
    items: Sequence[Optional[Item]], mode: AgeProbeMode = "oldest"
) -> Optional[int]:
    """Timestamp (seconds) used to decide whether a batch is too old.

    ``oldest`` takes the minimum time across the batch. ``last`` takes the
    time of the last item in the batch, which matches the oldest only when
    the batch is ordered newest first.

    Returns:
        The probe time, or None when no item in the batch carries a time
    """
    times = [item.time for item in items if item is not None and item.time is not None]
    if not times:
        return None
    if mode == "last":
        return times[-1]
    return min(times)
