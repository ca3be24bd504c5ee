from datetime import datetime, timedelta, timezone

import pytest

from lessfeed.domain.models import Card
from lessfeed.infrastructure.store import MemoryStore

NOW = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_card(card_id: str, created_at: str = "2025-01-01T00:00:00Z", **overrides) -> Card:
    fields = {
        "topic": "science",
        "difficulty": 1,
        "title": f"Title {card_id}",
        "hook": f"Hook {card_id}",
        "bullets": ["First point", "Second point"],
        "why": f"Why {card_id}",
    }
    fields.update(overrides)
    card = Card.sanitize(id=card_id, created_at=created_at, **fields)
    assert card is not None
    return card


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cards():
    return [make_card(f"c{i:02d}") for i in range(10)]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def card_factory():
    return make_card
