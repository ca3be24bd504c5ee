"""
Daily ritual tracking.

``DailyRitualTracker`` persists what happened on each UTC day. Keys embed the
day string, so state resets at midnight without any cleanup.

``DailyRitualSession`` is the in-memory state machine for one continuous pass
through the ritual:

    NotStarted -> OpeningSeen -> InProgress(n) -> Completed

Visible progress is session-local: re-entering Daily mode starts again at 0
even when today's completion is already persisted.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum

from lessfeed.application.streak import StreakTracker
from lessfeed.application.utils.dates import Clock, utc_day, utc_now
from lessfeed.domain.constants import (
    DAILY_CARD_COUNT,
    KEY_DAILY_OPENING_SEEN,
    daily_completed_key,
    daily_started_key,
    daily_viewed_key,
)
from lessfeed.domain.models import OPENING_ITEM_ID, SYSTEM_ITEM_ID
from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class DailyRitualTracker:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    def _today(self) -> str:
        return utc_day(self._clock())

    async def has_seen_opening_today(self) -> bool:
        return await self._store.get(KEY_DAILY_OPENING_SEEN) == self._today()

    async def mark_opening_seen(self) -> None:
        await self._store.set(KEY_DAILY_OPENING_SEEN, self._today())

    async def started_at(self) -> str | None:
        return await self._store.get(daily_started_key(self._today()))

    async def mark_started(self) -> None:
        await self._store.set(daily_started_key(self._today()), self._clock().isoformat())

    async def completed_at(self) -> str | None:
        return await self._store.get(daily_completed_key(self._today()))

    async def mark_completed(self) -> None:
        await self._store.set(daily_completed_key(self._today()), self._clock().isoformat())

    async def is_complete_today(self) -> bool:
        return await self.completed_at() is not None

    async def viewed_today(self) -> set[str]:
        return _decode_ids(await self._store.get(daily_viewed_key(self._today())))

    async def mark_card_viewed(self, card_id: str) -> None:
        def _add(raw: str | None) -> str:
            ids = _decode_ids(raw)
            ids.add(card_id)
            return json.dumps(sorted(ids))

        await self._store.update(daily_viewed_key(self._today()), _add)

    async def viewed_count(self) -> int:
        return len(await self.viewed_today())


def _decode_ids(raw: str | None) -> set[str]:
    if not raw:
        return set()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable daily viewed set")
        return set()
    if not isinstance(data, list):
        return set()
    return {str(x) for x in data}


class RitualState(str, Enum):
    NOT_STARTED = "not_started"
    OPENING_SEEN = "opening_seen"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class RitualProgress:
    """Outcome of one visibility event."""

    progress: int
    is_complete: bool
    just_completed: bool = False
    streak: int | None = None


@dataclass
class DailyRitualSession:
    tracker: DailyRitualTracker
    streak: StreakTracker
    size: int = DAILY_CARD_COUNT
    viewed_ids: set[str] = field(default_factory=set)
    opening_seen: bool = False
    is_complete: bool = False

    @property
    def progress(self) -> int:
        return len(self.viewed_ids)

    @property
    def state(self) -> RitualState:
        if self.is_complete:
            return RitualState.COMPLETED
        if self.viewed_ids:
            return RitualState.IN_PROGRESS
        if self.opening_seen:
            return RitualState.OPENING_SEEN
        return RitualState.NOT_STARTED

    async def reset(self) -> None:
        """Start a new pass. Completion survives from persisted state."""
        self.viewed_ids.clear()
        self.opening_seen = False
        self.is_complete = await self.tracker.is_complete_today()

    async def on_visible(self, item_id: str) -> RitualProgress:
        """Advance the ritual for an item that became visible."""
        if item_id == OPENING_ITEM_ID:
            self.opening_seen = True
            await self.tracker.mark_opening_seen()
            if await self.tracker.started_at() is None:
                await self.tracker.mark_started()
        elif item_id != SYSTEM_ITEM_ID and item_id not in self.viewed_ids:
            self.viewed_ids.add(item_id)
            await self.tracker.mark_card_viewed(item_id)

        if self.progress >= self.size and not self.is_complete:
            await self.tracker.mark_completed()
            streak = await self.streak.record_completion()
            self.is_complete = True
            logger.info(f"Daily ritual complete ({self.progress}/{self.size})")
            return RitualProgress(
                progress=self.progress, is_complete=True, just_completed=True, streak=streak
            )

        return RitualProgress(progress=self.progress, is_complete=self.is_complete)
