"""
Spaced-repetition state for a single card.

Timestamps are epoch milliseconds. Every transition takes ``now_ms`` explicitly
so the schedule is reproducible under test.
"""

from pydantic import BaseModel, ConfigDict, field_validator

from lessfeed.domain.constants import (
    REVIEW_INITIAL_DELAY_HOURS,
    REVIEW_RESCHEDULE_HOURS,
    REVIEW_STAGE_DAYS,
)

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR
MAX_STAGE = len(REVIEW_STAGE_DAYS) - 1


class ReviewItem(BaseModel):
    """
    Attributes:
        stage: Index into REVIEW_STAGE_DAYS, clamped to the table bounds.
        next_at: When the card is due again.
        last_seen_at: Last time the card was viewed while in review.
    """

    model_config = ConfigDict(frozen=True)

    stage: int = 0
    next_at: int
    last_seen_at: int | None = None

    @field_validator("stage")
    @classmethod
    def clamp_stage(cls, v: int) -> int:
        return max(0, min(v, MAX_STAGE))

    @classmethod
    def create(cls, now_ms: int) -> "ReviewItem":
        return cls(stage=0, next_at=now_ms + REVIEW_INITIAL_DELAY_HOURS * MS_PER_HOUR)

    def advance(self, now_ms: int) -> "ReviewItem":
        new_stage = min(self.stage + 1, MAX_STAGE)
        return self.model_copy(
            update={
                "stage": new_stage,
                "next_at": now_ms + REVIEW_STAGE_DAYS[new_stage] * MS_PER_DAY,
                "last_seen_at": now_ms,
            }
        )

    def reschedule(self, now_ms: int, hours: int = REVIEW_RESCHEDULE_HOURS) -> "ReviewItem":
        return self.model_copy(
            update={"next_at": now_ms + hours * MS_PER_HOUR, "last_seen_at": now_ms}
        )

    def is_due(self, now_ms: int) -> bool:
        return now_ms >= self.next_at
