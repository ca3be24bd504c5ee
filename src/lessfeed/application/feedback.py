"""Locally queued content feedback, uploaded later by the shell."""

import logging
from enum import Enum

from pydantic import BaseModel, TypeAdapter, ValidationError
from ulid import ULID

from lessfeed.application.utils.dates import Clock, epoch_ms, utc_now
from lessfeed.domain.constants import KEY_FEEDBACK_QUEUE
from lessfeed.domain.models import Lang
from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


class FeedbackKind(str, Enum):
    TYPO = "typo"
    WRONG = "wrong"
    UNCLEAR = "unclear"
    OTHER = "other"


class FeedbackItem(BaseModel):
    id: str
    card_id: str
    lang: str
    kind: FeedbackKind
    message: str
    created_at: int

    @classmethod
    def create(
        cls, card_id: str, lang: Lang, kind: FeedbackKind, message: str, now_ms: int
    ) -> "FeedbackItem":
        return cls(
            id=f"{now_ms}_{ULID()}",
            card_id=card_id,
            lang=lang.value,
            kind=kind,
            message=message.strip(),
            created_at=now_ms,
        )


_queue_adapter = TypeAdapter(list[FeedbackItem])


def _decode_queue(raw: str | None) -> list[FeedbackItem]:
    if not raw:
        return []
    try:
        return _queue_adapter.validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable feedback queue: {e.error_count()} error(s)")
        return []


class FeedbackQueue:
    def __init__(self, store: KeyValueStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def submit(
        self, card_id: str, lang: Lang, kind: FeedbackKind, message: str
    ) -> FeedbackItem:
        item = FeedbackItem.create(card_id, lang, kind, message, epoch_ms(self._clock()))
        await self.enqueue(item)
        return item

    async def enqueue(self, item: FeedbackItem) -> None:
        def _prepend(raw: str | None) -> str:
            queue = _decode_queue(raw)
            queue.insert(0, item)
            return _queue_adapter.dump_json(queue).decode("utf-8")

        await self._store.update(KEY_FEEDBACK_QUEUE, _prepend)

    async def list(self) -> list[FeedbackItem]:
        return _decode_queue(await self._store.get(KEY_FEEDBACK_QUEUE))

    async def clear(self) -> None:
        await self._store.remove(KEY_FEEDBACK_QUEUE)
