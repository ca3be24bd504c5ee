"""
Feed Composer — turns cards plus user state into an ordered list of feed items.

Per rebuild:
1. Daily mode is delegated to the daily selector.
2. Cards are filtered by list mode.
3. Survivors are scored (new-card boost, engagement boost, review boosts).
4. The first rebuild of a mode sorts by score and caches the id order; later
   rebuilds reuse the cached order so toggles never reshuffle what the user
   already scrolled past.
5. In Feed mode a support card is injected once enough distinct cards were
   viewed.

Composition is synchronous and side-effect free apart from the session
context it owns; persistence of the daily injection flag is left to the caller.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from lessfeed.application.selector import select_daily
from lessfeed.domain.constants import (
    DAILY_CARD_COUNT,
    REVIEW_DUE_BOOST,
    REVIEW_PINNED_BOOST,
    SCORE_LEARNED,
    SCORE_NEW_CARD,
    SCORE_UNUSEFUL,
    SCORE_VIEW_CAP,
    SCORE_VIEW_DIVISOR,
    SYSTEM_CARD_MIN_VIEWED,
    SYSTEM_CARD_POSITION,
)
from lessfeed.domain.models import (
    Card,
    Content,
    FeedItem,
    Lang,
    ListMode,
    Opening,
    OpeningCard,
    System,
    SystemCard,
)
from lessfeed.domain.review import ReviewItem

logger = logging.getLogger(__name__)


@dataclass
class UserState:
    """Snapshot of the persisted per-card relations used for one rebuild."""

    learned: set[str] = field(default_factory=set)
    unuseful: set[str] = field(default_factory=set)
    favorites: set[str] = field(default_factory=set)
    reviews: dict[str, ReviewItem] = field(default_factory=dict)


@dataclass
class SessionContext:
    """
    In-memory state of the current scrolling session. Never persisted.

    Attributes:
        order_cache: Stabilized id order per list mode.
        view_durations: Accumulated view time per card (ms).
        viewed_ids: Distinct content cards viewed this session, in any mode.
        injected: Whether the support card was already injected this session.
    """

    order_cache: dict[ListMode, list[str]] = field(default_factory=dict)
    view_durations: dict[str, int] = field(default_factory=dict)
    viewed_ids: set[str] = field(default_factory=set)
    injected: bool = False

    @property
    def unique_viewed(self) -> int:
        return len(self.viewed_ids)

    def invalidate_order(self) -> None:
        self.order_cache.clear()

    def reset(self) -> None:
        """Start over, as after a language switch."""
        self.order_cache.clear()
        self.viewed_ids.clear()
        self.injected = False

    def add_view_duration(self, card_id: str, duration_ms: int) -> int:
        total = self.view_durations.get(card_id, 0) + max(0, duration_ms)
        self.view_durations[card_id] = total
        return total

    def record_view(self, card_id: str) -> bool:
        """Remember a content view. Returns True the first time in this session."""
        if card_id in self.viewed_ids:
            return False
        self.viewed_ids.add(card_id)
        return True


@dataclass
class Composition:
    items: list[FeedItem]
    injected_system_card: bool = False


def filter_cards(cards: Sequence[Card], mode: ListMode, state: UserState) -> list[Card]:
    match mode:
        case ListMode.FEED:
            return [
                c for c in cards if c.id not in state.learned and c.id not in state.unuseful
            ]
        case ListMode.LEARNED:
            return [c for c in cards if c.id in state.learned]
        case ListMode.UNUSEFUL:
            return [c for c in cards if c.id in state.unuseful]
        case ListMode.REVIEW:
            return [c for c in cards if c.id in state.reviews]
        case ListMode.FAVORITES:
            return [c for c in cards if c.id in state.favorites]
        case ListMode.DAILY:
            return []


def score_card(card: Card, state: UserState, session: SessionContext, now_ms: int) -> float:
    """
    Rank weight of a card. Unuseful and learned cards sink to the bottom;
    unseen cards get a flat boost; viewed cards a capped engagement boost.
    Review membership is added on top.
    """
    if card.id in state.unuseful:
        score = SCORE_UNUSEFUL
    elif card.id in state.learned:
        score = SCORE_LEARNED
    else:
        viewed_ms = session.view_durations.get(card.id, 0)
        if viewed_ms <= 0:
            score = SCORE_NEW_CARD
        else:
            score = min(viewed_ms / SCORE_VIEW_DIVISOR, SCORE_VIEW_CAP)

    review = state.reviews.get(card.id)
    if review is not None:
        score += REVIEW_PINNED_BOOST
        if review.is_due(now_ms):
            score += REVIEW_DUE_BOOST
    return score


class FeedComposer:
    def __init__(self, session: SessionContext | None = None):
        self.session = session or SessionContext()

    def order(self, scored: list[tuple[Card, float]], mode: ListMode) -> list[Card]:
        cached = self.session.order_cache.get(mode)
        if cached is None:
            # sorted() is stable, so ties keep input order.
            ranked = [c for c, _ in sorted(scored, key=lambda pair: -pair[1])]
            self.session.order_cache[mode] = [c.id for c in ranked]
            return ranked

        positions = {card_id: i for i, card_id in enumerate(cached)}
        return [
            c
            for c, _ in sorted(scored, key=lambda pair: positions.get(pair[0].id, math.inf))
        ]

    def should_inject(self, injected_today: bool) -> bool:
        if self.session.injected or injected_today:
            return False
        return self.session.unique_viewed >= SYSTEM_CARD_MIN_VIEWED

    def compose(
        self,
        cards: Sequence[Card],
        mode: ListMode,
        state: UserState,
        lang: Lang,
        now_ms: int,
        day: str,
        injected_today: bool = False,
    ) -> Composition:
        if mode is ListMode.DAILY:
            return Composition(items=self.compose_daily(cards, state, lang, day))

        filtered = filter_cards(cards, mode, state)
        scored = [(c, score_card(c, state, self.session, now_ms)) for c in filtered]
        items: list[FeedItem] = [Content(c) for c in self.order(scored, mode)]

        injected = False
        if mode is ListMode.FEED and self.should_inject(injected_today):
            items.insert(min(SYSTEM_CARD_POSITION, len(items)), System(SystemCard.for_lang(lang)))
            self.session.injected = True
            injected = True
            logger.debug(f"Injected support card after {self.session.unique_viewed} views")

        logger.debug(f"Composed {len(items)} items for mode={mode.value} lang={lang.value}")
        return Composition(items=items, injected_system_card=injected)

    def compose_daily(
        self,
        cards: Sequence[Card],
        state: UserState,
        lang: Lang,
        day: str,
        count: int = DAILY_CARD_COUNT,
    ) -> list[FeedItem]:
        """Opening card, the day's selection, then the support card."""
        selected = select_daily(cards, count, day, lang, excluded=state.learned | state.unuseful)
        return [
            Opening(OpeningCard.for_lang(lang)),
            *(Content(c) for c in selected),
            System(SystemCard.for_lang(lang)),
        ]
