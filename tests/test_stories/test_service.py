"""End-to-end tests for fetch_current_stories against a fake API."""

import asyncio
import json
import logging

import httpx
import pytest

from src.stories.service import StoryRecord, fetch_current_stories
from src.utils.config import Settings, get_settings
from src.utils.error_handling import RemoteFetchError, SearchTimeoutError

BASE_URL = "https://hn.test/v0"


class FakeHackerNews:
    """In-memory API: a backlog list plus item payloads keyed by id."""

    def __init__(self, backlog, items):
        self.backlog = backlog
        self.items = items
        self.requested: list[str] = []
        self.failing_ids: set[int] = set()
        self.item_status = 200
        self.delay = 0.0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(request.url.path)
        if self.delay:
            await asyncio.sleep(self.delay)

        name = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        if "/item/" not in request.url.path:
            return httpx.Response(200, content=json.dumps(self.backlog).encode())

        item_id = int(name)
        if item_id in self.failing_ids:
            return httpx.Response(404)
        if self.item_status != 200:
            return httpx.Response(self.item_status)
        return httpx.Response(200, content=json.dumps(self.items.get(item_id)).encode())

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self))


def story(item_id, now_s, **fields):
    data = {
        "id": item_id,
        "type": "story",
        "score": 100,
        "time": now_s,
        "title": f"Story {item_id}",
        "url": f"https://example.com/{item_id}",
    }
    data.update(fields)
    return data


@pytest.fixture
def now_s(now_ms):
    return now_ms // 1000


@pytest.mark.asyncio
async def test_returns_story_records(now_ms, now_s):
    backlog = list(range(120, 100, -1))
    api = FakeHackerNews(backlog, {i: story(i, now_s) for i in backlog})

    async with api.client() as client:
        stories = await fetch_current_stories(client=client, now_ms=now_ms)

    assert len(stories) == 20
    assert stories[0] == StoryRecord(id=120, title="Story 120", url="https://example.com/120")
    assert api.requested[0] == "/v0/newstories.json"


@pytest.mark.asyncio
async def test_text_posts_link_to_discussion(now_ms, now_s):
    api = FakeHackerNews([5], {5: story(5, now_s, url=None, title="Ask HN: anything")})
    # Below the backlog everything is old so the scan stops immediately
    api.items.update({i: story(i, now_s - 5 * 3600) for i in range(1, 5)})

    async with api.client() as client:
        stories = await fetch_current_stories(client=client, now_ms=now_ms)

    assert stories == [
        StoryRecord(id=5, title="Ask HN: anything", url="https://news.ycombinator.com/item?id=5")
    ]


@pytest.mark.asyncio
async def test_lookup_failure_discards_partial_results(now_ms, now_s):
    backlog = list(range(200, 100, -1))
    items = {i: story(i, now_s, score=80 if i > 190 else 1) for i in backlog}
    api = FakeHackerNews(backlog, items)
    api.failing_ids = {150}

    async with api.client() as client:
        with pytest.raises(RemoteFetchError) as exc_info:
            await fetch_current_stories(client=client, now_ms=now_ms)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_deadline_aborts_slow_search(monkeypatch, now_ms, now_s):
    monkeypatch.setenv("SEARCH_DEADLINE", "0.05")
    api = FakeHackerNews([1], {1: story(1, now_s)})
    api.delay = 1.0

    async with api.client() as client:
        with pytest.raises(SearchTimeoutError) as exc_info:
            await fetch_current_stories(client=client, now_ms=now_ms)

    assert exc_info.value.deadline == 0.05


@pytest.mark.asyncio
async def test_deadline_can_be_disabled(monkeypatch, now_ms, now_s):
    monkeypatch.setenv("SEARCH_DEADLINE", "None")

    async def no_wait_for(*args, **kwargs):
        raise AssertionError("wait_for must not be used without a deadline")

    monkeypatch.setattr("src.stories.service.asyncio.wait_for", no_wait_for)
    api = FakeHackerNews([2, 1], {i: story(i, now_s) for i in (1, 2)})

    async with api.client() as client:
        stories = await fetch_current_stories(client=client, now_ms=now_ms)

    assert [s.id for s in stories] == [2, 1]


@pytest.mark.asyncio
async def test_creates_and_closes_its_own_client(monkeypatch, now_ms, now_s):
    api = FakeHackerNews([3, 2, 1], {i: story(i, now_s) for i in (1, 2, 3)})
    created = []

    def fake_create_client(settings):
        client = api.client()
        created.append(client)
        return client

    monkeypatch.setattr("src.stories.service.create_client", fake_create_client)

    stories = await fetch_current_stories(now_ms=now_ms)

    assert [s.id for s in stories] == [3, 2, 1]
    assert len(created) == 1
    assert created[0].is_closed


@pytest.mark.asyncio
async def test_failure_is_logged(caplog, now_ms):
    api = FakeHackerNews([1], {})
    api.failing_ids = {1}

    async with api.client() as client:
        with caplog.at_level(logging.ERROR, logger="src.stories.service"):
            with pytest.raises(RemoteFetchError):
                await fetch_current_stories(
                    settings=get_settings(), client=client, now_ms=now_ms
                )

    assert "Story retrieval failed" in caplog.text


@pytest.mark.asyncio
async def test_failure_is_logged_at_error_once(caplog, now_ms):
    api = FakeHackerNews([1], {})
    api.failing_ids = {1}

    async with api.client() as client:
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(RemoteFetchError):
                await fetch_current_stories(client=client, now_ms=now_ms)

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert errors[0].name == "src.stories.service"


@pytest.mark.asyncio
async def test_retry_settings_come_from_the_given_settings(monkeypatch, now_ms):
    monkeypatch.setenv("FETCH_MAX_RETRIES", "3")
    settings = Settings(FETCH_MAX_RETRIES=0, FETCH_RETRY_DELAY=0)
    api = FakeHackerNews([7], {})
    api.item_status = 503

    async with api.client() as client:
        with pytest.raises(RemoteFetchError) as exc_info:
            await fetch_current_stories(settings=settings, client=client, now_ms=now_ms)

    assert exc_info.value.status_code == 503
    assert api.requested.count("/v0/item/7.json") == 1
