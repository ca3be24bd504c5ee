"""
Review Scheduler — owns spaced-repetition state per card.

The whole map is persisted as one JSON blob, so every mutation is a single
read-modify-write through ``KeyValueStore.update``.
"""

import logging

from pydantic import TypeAdapter, ValidationError

from lessfeed.application.utils.dates import Clock, epoch_ms, utc_now
from lessfeed.domain.constants import KEY_REVIEWS, REVIEW_ADVANCE_MIN_VIEW_MS
from lessfeed.domain.ports import KeyValueStore
from lessfeed.domain.review import ReviewItem

logger = logging.getLogger(__name__)

_reviews_adapter = TypeAdapter(dict[str, ReviewItem])


def decode_reviews(raw: str | None) -> dict[str, ReviewItem]:
    """Parse a stored review map. Corrupt data yields an empty map."""
    if not raw:
        return {}
    try:
        return _reviews_adapter.validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable review state: {e.error_count()} error(s)")
        return {}


def encode_reviews(reviews: dict[str, ReviewItem]) -> str:
    return _reviews_adapter.dump_json(reviews).decode("utf-8")


class ReviewScheduler:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    def _now_ms(self) -> int:
        return epoch_ms(self._clock())

    async def all(self) -> dict[str, ReviewItem]:
        return decode_reviews(await self._store.get(KEY_REVIEWS))

    async def get(self, card_id: str) -> ReviewItem | None:
        return (await self.all()).get(card_id)

    async def is_in_review(self, card_id: str) -> bool:
        return card_id in await self.all()

    async def is_due(self, card_id: str) -> bool:
        item = await self.get(card_id)
        return item is not None and item.is_due(self._now_ms())

    async def add(self, card_id: str) -> None:
        now_ms = self._now_ms()

        def _add(raw: str | None) -> str:
            reviews = decode_reviews(raw)
            reviews[card_id] = ReviewItem.create(now_ms)
            return encode_reviews(reviews)

        await self._store.update(KEY_REVIEWS, _add)

    async def remove(self, card_id: str) -> None:
        def _remove(raw: str | None) -> str:
            reviews = decode_reviews(raw)
            reviews.pop(card_id, None)
            return encode_reviews(reviews)

        await self._store.update(KEY_REVIEWS, _remove)

    async def toggle(self, card_id: str) -> bool:
        """Add or remove the card. Returns True if it is now in review."""
        now_ms = self._now_ms()
        added = False

        def _toggle(raw: str | None) -> str:
            nonlocal added
            reviews = decode_reviews(raw)
            if card_id in reviews:
                del reviews[card_id]
                added = False
            else:
                reviews[card_id] = ReviewItem.create(now_ms)
                added = True
            return encode_reviews(reviews)

        await self._store.update(KEY_REVIEWS, _toggle)
        return added

    async def mark_seen(self, card_id: str, view_duration_ms: int) -> None:
        """
        Advance the card after a long enough view, otherwise push it back 6h.

        No-op for cards that are not in review.
        """
        now_ms = self._now_ms()

        def _mark(raw: str | None) -> str | None:
            reviews = decode_reviews(raw)
            item = reviews.get(card_id)
            if item is None:
                return raw
            if view_duration_ms >= REVIEW_ADVANCE_MIN_VIEW_MS:
                reviews[card_id] = item.advance(now_ms)
            else:
                reviews[card_id] = item.reschedule(now_ms)
            return encode_reviews(reviews)

        await self._store.update(KEY_REVIEWS, _mark)
