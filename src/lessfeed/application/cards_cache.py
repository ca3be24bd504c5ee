"""Last-good card set per language."""

import logging

from pydantic import BaseModel, ValidationError

from lessfeed.application.utils.dates import Clock, epoch_ms, utc_now
from lessfeed.domain.constants import CARDS_CACHE_FRESH_HOURS, cards_cache_key
from lessfeed.domain.models import Card, Lang
from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class CardsCache(BaseModel):
    saved_at: int
    cards: list[Card]

    def is_fresh(self, now_ms: int) -> bool:
        return (now_ms - self.saved_at) < CARDS_CACHE_FRESH_HOURS * 60 * 60 * 1000


class CardsCacheRepository:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def load(self, lang: Lang) -> CardsCache | None:
        raw = await self._store.get(cards_cache_key(lang.value))
        if raw is None:
            return None
        try:
            return CardsCache.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cards cache for {lang.value}: {e}")
            return None

    async def save(self, lang: Lang, cards: list[Card]) -> None:
        cache = CardsCache(saved_at=epoch_ms(self._clock()), cards=cards)
        await self._store.set(cards_cache_key(lang.value), cache.model_dump_json())
        logger.debug(f"Cached {len(cards)} cards for {lang.value}")

    async def clear(self, lang: Lang) -> None:
        await self._store.remove(cards_cache_key(lang.value))
