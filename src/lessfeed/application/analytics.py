"""
Anonymous analytics aggregation.

Events are counted locally per (card, event, language) and flushed to a sink in
one call per key. Failed sends are re-queued; whatever is left is persisted so
it survives a restart. Nothing here ever raises to the caller.
"""

import json
import logging

from lessfeed.domain.constants import KEY_PENDING_ANALYTICS
from lessfeed.domain.models import AnalyticsEvent, Lang
from lessfeed.domain.ports import AnalyticsSink, KeyValueStore

logger = logging.getLogger(__name__)


def event_key(card_id: str, event: AnalyticsEvent, lang: Lang) -> str:
    return f"{card_id}|{event.value}|{lang.value}"


class AnalyticsAggregator:
    def __init__(self, store: KeyValueStore):
        self._store = store
        self._pending: dict[str, int] = {}

    @property
    def pending(self) -> dict[str, int]:
        return dict(self._pending)

    def track(self, card_id: str, event: AnalyticsEvent, lang: Lang) -> None:
        key = event_key(card_id, event, lang)
        self._pending[key] = self._pending.get(key, 0) + 1
        logger.debug(f"Tracked: {key}")

    def _merge(self, counts: dict[str, int]) -> None:
        for key, count in counts.items():
            self._pending[key] = self._pending.get(key, 0) + count

    async def load_pending(self) -> None:
        raw = await self._store.get(KEY_PENDING_ANALYTICS)
        if not raw:
            return
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to load pending events: {e}")
            return
        if not isinstance(loaded, dict):
            return
        counts = {k: v for k, v in loaded.items() if isinstance(v, int) and v > 0}
        self._merge(counts)
        logger.debug(f"Loaded {len(counts)} pending events")

    async def save_pending(self) -> None:
        try:
            await self._store.set(KEY_PENDING_ANALYTICS, json.dumps(self._pending))
        except Exception as e:
            logger.error(f"Failed to save pending events: {e}")

    async def flush(self, sink: AnalyticsSink) -> int:
        """Send every pending count. Returns the number of keys delivered."""
        to_send, self._pending = self._pending, {}
        if not to_send:
            logger.debug("No events to flush")
            return 0

        logger.debug(f"Flushing {len(to_send)} events")
        failed: dict[str, int] = {}
        sent = 0
        for key, count in to_send.items():
            parts = key.split("|")
            if len(parts) != 3:
                continue
            card_id, event_type, lang = parts
            try:
                await sink.send(card_id, event_type, lang, count)
                sent += 1
            except Exception as e:
                logger.error(f"Failed to send {key}: {e}")
                failed[key] = count

        self._merge(failed)
        await self.save_pending()
        return sent
