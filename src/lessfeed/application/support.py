"""Per-day flags for the support (system) card."""

from lessfeed.application.utils.dates import Clock, utc_day, utc_now
from lessfeed.domain.constants import KEY_SUPPORT_INJECTED_DAY, KEY_SUPPORT_USED_DAY
from lessfeed.domain.ports import KeyValueStore


class SupportTracker:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    def _today(self) -> str:
        return utc_day(self._clock())

    async def was_injected_today(self) -> bool:
        return await self._store.get(KEY_SUPPORT_INJECTED_DAY) == self._today()

    async def mark_injected(self) -> None:
        await self._store.set(KEY_SUPPORT_INJECTED_DAY, self._today())

    async def was_used_today(self) -> bool:
        return await self._store.get(KEY_SUPPORT_USED_DAY) == self._today()

    async def mark_used(self) -> None:
        await self._store.set(KEY_SUPPORT_USED_DAY, self._today())
