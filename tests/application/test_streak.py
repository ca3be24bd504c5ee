import pytest

from lessfeed.application.streak import StreakTracker
from lessfeed.domain.constants import KEY_STREAK_COUNT, KEY_STREAK_LAST_COMPLETION


@pytest.fixture
def tracker(store, clock):
    return StreakTracker(store, clock)


@pytest.mark.asyncio
async def test_first_completion_starts_at_one(tracker, store):
    assert await tracker.record_completion() == 1
    assert await store.get(KEY_STREAK_LAST_COMPLETION) == "2025-01-15"


@pytest.mark.asyncio
async def test_completion_after_yesterday_extends_streak(tracker, store):
    await store.set(KEY_STREAK_COUNT, "3")
    await store.set(KEY_STREAK_LAST_COMPLETION, "2025-01-14")

    assert await tracker.record_completion() == 4
    assert await store.get(KEY_STREAK_LAST_COMPLETION) == "2025-01-15"
    # Same day again is a no-op.
    assert await tracker.record_completion() == 4
    assert await tracker.current() == 4


@pytest.mark.asyncio
async def test_gap_resets_to_one(tracker, store):
    await store.set(KEY_STREAK_COUNT, "7")
    await store.set(KEY_STREAK_LAST_COMPLETION, "2025-01-10")
    assert await tracker.record_completion() == 1


@pytest.mark.asyncio
async def test_check_validity_breaks_stale_streak(tracker, store):
    await store.set(KEY_STREAK_COUNT, "5")
    await store.set(KEY_STREAK_LAST_COMPLETION, "2025-01-13")
    assert await tracker.check_validity() == 0
    assert await store.get(KEY_STREAK_COUNT) == "0"


@pytest.mark.asyncio
async def test_check_validity_keeps_recent_streak(tracker, store):
    await store.set(KEY_STREAK_COUNT, "5")
    await store.set(KEY_STREAK_LAST_COMPLETION, "2025-01-14")
    assert await tracker.check_validity() == 5


@pytest.mark.asyncio
async def test_check_validity_without_history_writes_nothing(tracker, store):
    assert await tracker.check_validity() == 0
    assert await store.get(KEY_STREAK_COUNT) is None


@pytest.mark.asyncio
async def test_midnight_rollover_continues_streak(tracker, clock):
    assert await tracker.record_completion() == 1
    clock.advance(days=1)
    assert await tracker.record_completion() == 2


@pytest.mark.asyncio
async def test_unreadable_count_is_zero(tracker, store):
    await store.set(KEY_STREAK_COUNT, "lots")
    assert await tracker.current() == 0
