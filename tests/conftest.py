"""Pytest configuration shared by all tests."""

import shutil
from pathlib import Path

import pytest

from src.integrations.hackernews.models import Item
from src.utils.config import reset_settings

# Fixed search start: 2024-01-01T12:00:00Z
NOW_S = 1_704_110_400
NOW_MS = NOW_S * 1000


@pytest.fixture(scope="session", autouse=True)
def backup_env_file():
    """Backup .env file during test session to prevent pollution."""
    env_file = Path(".env")
    backup_file = Path(".env.test_backup")

    if env_file.exists():
        shutil.copy(env_file, backup_file)
        env_file.unlink()

    yield

    if backup_file.exists():
        shutil.move(backup_file, env_file)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Each test starts from default settings with fast, quiet retries."""
    monkeypatch.setenv("FETCH_RETRY_DELAY", "0")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def now_ms() -> int:
    """Fixed search start in milliseconds."""
    return NOW_MS


@pytest.fixture
def make_item():
    """Factory for items that qualify unless fields override them."""

    def _make(item_id: int, **fields) -> Item:
        data = {
            "id": item_id,
            "type": "story",
            "score": 100,
            "time": NOW_S,
            "title": f"Story {item_id}",
            "url": f"https://example.com/{item_id}",
        }
        data.update(fields)
        return Item(**data)

    return _make
