"""Item records returned by the Hacker News item API."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


class ItemType(str, Enum):
    """Item type tags used by the API.

    Attributes:
        STORY: A submitted link or text post
        COMMENT: A reply to another item
        JOB: A job posting
        POLL: A poll
        POLLOPT: One option of a poll
    """

    STORY = "story"
    COMMENT = "comment"
    JOB = "job"
    POLL = "poll"
    POLLOPT = "pollopt"


class Item(BaseModel):
    """A single item as fetched from the API.

    Only ``id`` is guaranteed. Deleted items come back with little more
    than an id and ``deleted: true``. Fields the API adds that are not
    listed here are ignored.

    Attributes:
        id: Item id, assigned by the API
        type: Type tag (see ItemType); kept as a plain string
        score: Points; None means the item cannot be ranked
        time: Creation time in seconds since the epoch
        title: Story title
        url: Linked URL; missing for text posts
        by: Author username
        descendants: Total comment count
        deleted: Item was deleted
        dead: Item was flagged dead
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    type: Optional[str] = None
    score: Optional[int] = None
    time: Optional[int] = None
    title: Optional[str] = None
    url: Optional[str] = None
    by: Optional[str] = None
    descendants: Optional[int] = None
    deleted: bool = False
    dead: bool = False

    @property
    def hn_url(self) -> str:
        """Discussion page for this item."""
        return HN_ITEM_URL.format(id=self.id)
