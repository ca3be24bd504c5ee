"""
Engagement trackers: per-card boolean relations stored as id sets.

Learned, unuseful and favorite are global; "seen" is kept per language so the
"new" badge resets for each translation.
"""

import logging

from lessfeed.domain.constants import (
    KEY_FAVORITES,
    KEY_LEARNED,
    KEY_UNUSEFUL,
    seen_cards_key,
)
from lessfeed.domain.models import Lang
from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class MembershipTracker:
    """A persisted set of card ids whose only mutator is ``toggle``."""

    def __init__(self, store: KeyValueStore, key: str):
        self._store = store
        self.key = key

    async def members(self) -> set[str]:
        return await self._store.get_set(self.key)

    async def is_member(self, card_id: str) -> bool:
        return card_id in await self.members()

    async def toggle(self, card_id: str) -> bool:
        """Flip membership and return the new state."""

        def _flip(current: set[str]) -> set[str]:
            if card_id in current:
                current.discard(card_id)
            else:
                current.add(card_id)
            return current

        updated = await self._store.update_set(self.key, _flip)
        is_member = card_id in updated
        logger.debug(f"[{self.key}] {card_id} -> {is_member}")
        return is_member

    async def count(self) -> int:
        return len(await self.members())


class LearnedTracker(MembershipTracker):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, KEY_LEARNED)


class UnusefulTracker(MembershipTracker):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, KEY_UNUSEFUL)


class FavoritesTracker(MembershipTracker):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, KEY_FAVORITES)


class SeenTracker:
    """Cards already displayed, one set per language."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def is_seen(self, card_id: str, lang: Lang) -> bool:
        return card_id in await self._store.get_set(seen_cards_key(lang.value))

    async def mark_seen(self, card_id: str, lang: Lang) -> bool:
        """Add the card to the seen set. Returns True if it was not seen before."""
        first_time = False

        def _add(current: set[str]) -> set[str]:
            nonlocal first_time
            first_time = card_id not in current
            current.add(card_id)
            return current

        await self._store.update_set(seen_cards_key(lang.value), _add)
        return first_time

    async def mark_seen_many(self, card_ids: list[str], lang: Lang) -> None:
        await self._store.update_set(
            seen_cards_key(lang.value), lambda current: current | set(card_ids)
        )
