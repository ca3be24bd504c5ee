"""
Streak Tracker — consecutive UTC days with a completed daily ritual.
"""

import logging

from lessfeed.application.utils.dates import Clock, utc_day, utc_now, utc_yesterday
from lessfeed.domain.constants import KEY_STREAK_COUNT, KEY_STREAK_LAST_COMPLETION
from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class StreakTracker:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def current(self) -> int:
        raw = await self._store.get(KEY_STREAK_COUNT)
        try:
            return max(0, int(raw)) if raw is not None else 0
        except ValueError:
            logger.warning(f"Ignoring unreadable streak count {raw!r}")
            return 0

    async def last_completion(self) -> str | None:
        return await self._store.get(KEY_STREAK_LAST_COMPLETION)

    async def record_completion(self) -> int:
        """
        Count today's completion once.

        Yesterday -> streak + 1, today -> unchanged, anything else -> 1.
        Returns the streak after recording.
        """
        now = self._clock()
        today = utc_day(now)

        async with self._store.locked(KEY_STREAK_COUNT):
            last = await self.last_completion()
            if last == today:
                return await self.current()
            if last == utc_yesterday(now):
                streak = await self.current() + 1
            else:
                streak = 1
            await self._store.set(KEY_STREAK_COUNT, str(streak))
            await self._store.set(KEY_STREAK_LAST_COMPLETION, today)

        logger.info(f"Daily ritual completed, streak is now {streak}")
        return streak

    async def check_validity(self) -> int:
        """
        Lazily break the streak when the last completion is older than yesterday.

        Meant to be called once per app foreground.
        """
        now = self._clock()
        last = await self.last_completion()
        if last is None:
            return 0
        if last not in (utc_day(now), utc_yesterday(now)):
            await self._store.set(KEY_STREAK_COUNT, "0")
            logger.info(f"Streak reset, last completion was {last}")
            return 0
        return await self.current()
