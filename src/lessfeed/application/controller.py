"""
Feed Controller — the boundary consumed by a presentation shell.

The shell subscribes to ``FeedState`` snapshots and sends intents back
(toggles, visibility and duration reports, mode and language changes).
The controller owns card loading with cache fallback, the session context,
the undo toast and the slow-network hint.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field, replace
from typing import Any

from lessfeed.application.analytics import AnalyticsAggregator
from lessfeed.application.cards_cache import CardsCacheRepository
from lessfeed.application.composer import FeedComposer, SessionContext, UserState
from lessfeed.application.daily import DailyRitualSession, DailyRitualTracker
from lessfeed.application.engagement import (
    FavoritesTracker,
    LearnedTracker,
    SeenTracker,
    UnusefulTracker,
)
from lessfeed.application.feedback import FeedbackItem, FeedbackKind, FeedbackQueue
from lessfeed.application.review_scheduler import ReviewScheduler
from lessfeed.application.settings_repo import SettingsRepository
from lessfeed.application.streak import StreakTracker
from lessfeed.application.support import SupportTracker
from lessfeed.application.utils.dates import Clock, epoch_ms, utc_day, utc_now
from lessfeed.application.utils.timers import OneShotTimer
from lessfeed.domain.constants import SLOW_HINT_SECONDS, UNDO_TOAST_SECONDS
from lessfeed.domain.errors import CardSourceError
from lessfeed.domain.models import (
    AnalyticsEvent,
    Card,
    Content,
    FeedItem,
    Lang,
    ListMode,
    is_content_id,
)
from lessfeed.domain.ports import AnalyticsSink, CardSource, KeyValueStore
from lessfeed.domain.settings import UISettings

logger = logging.getLogger(__name__)

UNDO_MESSAGES = {
    AnalyticsEvent.LEARNED: {
        Lang.FR: "Carte archivée",
        Lang.EN: "Card archived",
        Lang.ES: "Tarjeta archivada",
    },
    AnalyticsEvent.UNUSEFUL: {
        Lang.FR: "Carte masquée",
        Lang.EN: "Card hidden",
        Lang.ES: "Tarjeta oculta",
    },
    AnalyticsEvent.REVIEW: {
        Lang.FR: "Ajoutée aux révisions",
        Lang.EN: "Added to reviews",
        Lang.ES: "Añadida a repasar",
    },
}


@dataclass(frozen=True, eq=False)
class UndoToast:
    message: str
    action: Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class FeedState:
    """Observable snapshot handed to subscribers after every change."""

    items: list[FeedItem] = field(default_factory=list)
    settings: UISettings = field(default_factory=UISettings)
    is_loading: bool = False
    is_refreshing: bool = False
    error_message: str | None = None
    show_slow_hint: bool = False
    current_index: int = 0
    undo_toast: UndoToast | None = None
    learned_count: int = 0
    daily_progress: int = 0
    is_daily_complete: bool = False
    show_daily_completion: bool = False
    current_streak: int = 0
    pager_key: int = 0


Listener = Callable[[FeedState], None]


class FeedController:
    def __init__(
        self,
        store: KeyValueStore,
        source: CardSource,
        clock: Clock = utc_now,
        default_lang: Lang = Lang.EN,
        undo_seconds: float = UNDO_TOAST_SECONDS,
        slow_hint_seconds: float = SLOW_HINT_SECONDS,
    ):
        self._source = source
        self._clock = clock
        self._undo_seconds = undo_seconds

        self.learned = LearnedTracker(store)
        self.unuseful = UnusefulTracker(store)
        self.favorites = FavoritesTracker(store)
        self.seen = SeenTracker(store)
        self.reviews = ReviewScheduler(store, clock)
        self.settings_repo = SettingsRepository(store, default_lang)
        self.cache = CardsCacheRepository(store, clock)
        self.support = SupportTracker(store, clock)
        self.daily = DailyRitualTracker(store, clock)
        self.streak = StreakTracker(store, clock)
        self.feedback = FeedbackQueue(store, clock)
        self.analytics = AnalyticsAggregator(store)

        self.session = SessionContext()
        self.composer = FeedComposer(self.session)
        self.ritual = DailyRitualSession(self.daily, self.streak)

        self.state = FeedState(settings=UISettings(lang=default_lang.value))
        self._cards: list[Card] = []
        self._listeners: list[Listener] = []
        self._rebuild_lock = asyncio.Lock()
        self._loading: set[Lang] = set()
        self._generation = 0
        self._background: set[asyncio.Task] = set()
        self._toast_timer: OneShotTimer | None = None
        self._slow_timer = OneShotTimer(slow_hint_seconds, self._show_slow_hint)

    # ---------- Observation ----------

    @property
    def cards(self) -> list[Card]:
        return list(self._cards)

    @property
    def lang(self) -> Lang:
        return self.state.settings.language

    @property
    def mode(self) -> ListMode:
        return self.state.settings.mode

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        listener(self.state)
        return lambda: self._listeners.remove(listener)

    def _emit(self, **changes: Any) -> None:
        self.state = replace(self.state, **changes)
        for listener in list(self._listeners):
            listener(self.state)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for background refreshes started by ``load_cards``."""
        while self._background:
            await asyncio.gather(*list(self._background))

    async def close(self) -> None:
        self._slow_timer.cancel()
        if self._toast_timer is not None:
            self._toast_timer.cancel()
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        await self.analytics.save_pending()

    # ---------- Startup & loading ----------

    async def load_settings(self) -> UISettings:
        settings = await self.settings_repo.get()
        self._emit(settings=settings)
        return settings

    async def start(self) -> None:
        """Load settings and counters, validate the streak, then load cards."""
        settings = await self.load_settings()
        await self.analytics.load_pending()
        self._emit(
            learned_count=await self.learned.count(),
            current_streak=await self.streak.check_validity(),
        )
        if settings.mode is ListMode.DAILY:
            await self.ritual.reset()
        await self.load_cards()

    async def load_cards(self, force_refresh: bool = False) -> None:
        """
        Serve a fresh cache immediately and refresh in the background, or
        fetch from the network first when there is no fresh cache.

        Overlapping loads for the same language are ignored.
        """
        lang = self.lang
        if lang in self._loading:
            logger.debug(f"Load already in progress for {lang.value}")
            return

        self._loading.add(lang)
        self._emit(is_loading=True, error_message=None, show_slow_hint=False)
        self._slow_timer.start()
        try:
            if not force_refresh:
                cache = await self.cache.load(lang)
                if cache is not None and cache.is_fresh(epoch_ms(self._clock())):
                    self._cards = list(cache.cards)
                    await self.rebuild()
                    self._spawn(self._refresh_from_network(lang))
                    return
            await self._refresh_from_network(lang)
        finally:
            self._loading.discard(lang)
            if not self._loading:
                self._slow_timer.cancel()
                self._emit(is_loading=False, show_slow_hint=False)

    async def refresh(self) -> None:
        """Pull-to-refresh: bypass the cache and recompute the order."""
        self._emit(is_refreshing=True)
        self.session.invalidate_order()
        try:
            await self.load_cards(force_refresh=True)
        finally:
            self._emit(is_refreshing=False)

    async def _refresh_from_network(self, lang: Lang) -> None:
        self._generation += 1
        generation = self._generation
        error: CardSourceError | None = None
        cards: list[Card] = []
        try:
            cards = await self._source.fetch_cards(lang)
        except CardSourceError as e:
            error = e

        if generation != self._generation or lang is not self.lang:
            logger.debug(f"Discarding superseded fetch for {lang.value}")
            return

        if error is not None:
            logger.warning(f"Fetching cards for {lang.value} failed: {error}")
            await self._fall_back_to_cache(lang, str(error))
        elif cards:
            self._cards = list(cards)
            await self.cache.save(lang, cards)
            await self.rebuild()
        elif not self._cards:
            await self._fall_back_to_cache(lang, "No cards available")

    async def _fall_back_to_cache(self, lang: Lang, reason: str) -> None:
        cache = await self.cache.load(lang)
        if cache is not None and cache.cards:
            logger.info(f"Using cached cards for {lang.value} ({len(cache.cards)})")
            self._cards = list(cache.cards)
            await self.rebuild()
        elif not self._cards:
            self._emit(error_message=reason)

    def _show_slow_hint(self) -> None:
        if self._loading:
            self._emit(show_slow_hint=True)

    # ---------- Composition ----------

    async def user_state(self) -> UserState:
        return UserState(
            learned=await self.learned.members(),
            unuseful=await self.unuseful.members(),
            favorites=await self.favorites.members(),
            reviews=await self.reviews.all(),
        )

    async def rebuild(self) -> list[FeedItem]:
        """Recompose the feed for the current mode and language."""
        async with self._rebuild_lock:
            mode, lang = self.mode, self.lang
            now = self._clock()
            state = await self.user_state()
            injected_today = (
                await self.support.was_injected_today() if mode is ListMode.FEED else False
            )
            composition = self.composer.compose(
                self._cards,
                mode,
                state,
                lang,
                now_ms=epoch_ms(now),
                day=utc_day(now),
                injected_today=injected_today,
            )
            if composition.injected_system_card:
                await self.support.mark_injected()

            changes: dict[str, Any] = {
                "items": composition.items,
                "learned_count": len(state.learned),
            }
            if mode is ListMode.DAILY:
                if not self.ritual.is_complete:
                    self.ritual.is_complete = await self.daily.is_complete_today()
                changes["is_daily_complete"] = self.ritual.is_complete
            self._emit(**changes)
            return composition.items

    # ---------- Visibility ----------

    async def card_became_visible(self, item_id: str) -> None:
        lang = self.lang
        if is_content_id(item_id):
            self.analytics.track(item_id, AnalyticsEvent.VIEW, lang)
            self.session.record_view(item_id)

        if self.mode is ListMode.DAILY:
            result = await self.ritual.on_visible(item_id)
            changes: dict[str, Any] = {
                "daily_progress": result.progress,
                "is_daily_complete": result.is_complete,
            }
            if result.just_completed:
                changes["show_daily_completion"] = True
                changes["current_streak"] = result.streak
            self._emit(**changes)
            return

        item = next((i for i in self.state.items if i.id == item_id), None)
        if isinstance(item, Content):
            await self.seen.mark_seen(item_id, lang)
            if self.mode is ListMode.FEED and self.composer.should_inject(
                await self.support.was_injected_today()
            ):
                await self.rebuild()

    async def card_view_duration(self, card_id: str, duration_ms: int) -> None:
        self.session.add_view_duration(card_id, duration_ms)
        await self.reviews.mark_seen(card_id, duration_ms)

    # ---------- Actions ----------

    async def toggle_learned(self, card_id: str) -> bool:
        now_learned = await self.learned.toggle(card_id)
        if now_learned:
            self.analytics.track(card_id, AnalyticsEvent.LEARNED, self.lang)
            self._show_undo_toast(AnalyticsEvent.LEARNED, self.learned.toggle, card_id)
        await self.rebuild()

        settings = self.state.settings
        if now_learned and not settings.continuous_reading and settings.mode is ListMode.FEED:
            self.advance_to_next()
        return now_learned

    async def toggle_unuseful(self, card_id: str) -> bool:
        now_unuseful = await self.unuseful.toggle(card_id)
        if now_unuseful:
            self.analytics.track(card_id, AnalyticsEvent.UNUSEFUL, self.lang)
            self._show_undo_toast(AnalyticsEvent.UNUSEFUL, self.unuseful.toggle, card_id)
        await self.rebuild()
        return now_unuseful

    async def toggle_review(self, card_id: str) -> bool:
        now_in_review = await self.reviews.toggle(card_id)
        if now_in_review:
            self.analytics.track(card_id, AnalyticsEvent.REVIEW, self.lang)
            self._show_undo_toast(AnalyticsEvent.REVIEW, self.reviews.toggle, card_id)
        await self.rebuild()
        return now_in_review

    async def toggle_favorite(self, card_id: str) -> bool:
        now_favorite = await self.favorites.toggle(card_id)
        if now_favorite:
            self.analytics.track(card_id, AnalyticsEvent.FAVORITE, self.lang)
        if self.mode is ListMode.FAVORITES:
            await self.rebuild()
        return now_favorite

    async def submit_feedback(
        self, card_id: str, kind: FeedbackKind, message: str
    ) -> FeedbackItem:
        return await self.feedback.submit(card_id, self.lang, kind, message)

    async def mark_support_used(self) -> None:
        await self.support.mark_used()

    async def flush_analytics(self, sink: AnalyticsSink) -> int:
        return await self.analytics.flush(sink)

    # ---------- Undo toast ----------

    def _show_undo_toast(
        self,
        event: AnalyticsEvent,
        reverse: Callable[[str], Awaitable[bool]],
        card_id: str,
    ) -> None:
        async def _undo() -> None:
            await reverse(card_id)
            await self.rebuild()

        toast = UndoToast(UNDO_MESSAGES[event][self.lang], _undo)
        if self._toast_timer is not None:
            self._toast_timer.cancel()
        self._toast_timer = OneShotTimer(self._undo_seconds, lambda: self._expire_toast(toast))
        self._toast_timer.start()
        self._emit(undo_toast=toast)

    def _expire_toast(self, toast: UndoToast) -> None:
        if self.state.undo_toast is toast:
            self._emit(undo_toast=None)

    def dismiss_undo_toast(self) -> None:
        if self._toast_timer is not None:
            self._toast_timer.cancel()
            self._toast_timer = None
        self._emit(undo_toast=None)

    async def execute_undo(self) -> None:
        toast = self.state.undo_toast
        self.dismiss_undo_toast()
        if toast is not None:
            await toast.action()

    # ---------- Navigation ----------

    def advance_to_next(self) -> None:
        if self.state.current_index < len(self.state.items) - 1:
            self._emit(current_index=self.state.current_index + 1)

    def set_current_index(self, index: int) -> None:
        self._emit(current_index=max(0, min(index, max(0, len(self.state.items) - 1))))

    def dismiss_daily_completion(self) -> None:
        self._emit(show_daily_completion=False)

    # ---------- Modes & settings ----------

    async def set_list_mode(self, mode: ListMode) -> None:
        if mode is ListMode.DAILY:
            await self.enter_daily_mode()
            return
        settings = await self.settings_repo.update_list_mode(mode)
        self.session.invalidate_order()
        self._emit(settings=settings, current_index=0)
        await self.rebuild()

    async def enter_daily_mode(self) -> None:
        """Switch to the ritual and start a new pass at progress 0."""
        settings = await self.settings_repo.update_list_mode(ListMode.DAILY)
        self.session.invalidate_order()
        await self.ritual.reset()
        self._emit(
            settings=settings,
            daily_progress=0,
            is_daily_complete=self.ritual.is_complete,
        )
        await self.rebuild()
        self._emit(current_index=0, pager_key=self.state.pager_key + 1)

    async def set_lang(self, lang: Lang) -> None:
        changed = lang is not self.lang
        settings = await self.settings_repo.update_lang(lang)
        self._emit(settings=settings)
        if changed:
            logger.info(f"Language switched to {lang.value}")
            self.session.reset()
            self._cards = []
            self._emit(items=[], current_index=0)
            await self.load_cards()

    async def _apply_settings(self, update: Awaitable[UISettings]) -> UISettings:
        settings = await update
        self._emit(settings=settings)
        return settings

    async def toggle_text_scale(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.toggle_text_scale())

    async def toggle_focus_mode(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.toggle_focus_mode())

    async def toggle_continuous_reading(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.toggle_continuous_reading())

    async def toggle_gestures(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.toggle_gestures())

    async def toggle_dark_mode(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.toggle_dark_mode())

    async def mark_help_seen(self) -> UISettings:
        return await self._apply_settings(self.settings_repo.mark_help_seen())

    async def set_notifications_enabled(self, enabled: bool) -> UISettings:
        return await self._apply_settings(self.settings_repo.set_notifications_enabled(enabled))

    async def set_notification_time(self, hour: int, minute: int) -> UISettings:
        return await self._apply_settings(self.settings_repo.set_notification_time(hour, minute))

    # ---------- Card queries ----------

    async def is_new(self, card_id: str) -> bool:
        return not await self.seen.is_seen(card_id, self.lang)

    async def is_learned(self, card_id: str) -> bool:
        return await self.learned.is_member(card_id)

    async def is_unuseful(self, card_id: str) -> bool:
        return await self.unuseful.is_member(card_id)

    async def is_favorite(self, card_id: str) -> bool:
        return await self.favorites.is_member(card_id)

    async def is_in_review(self, card_id: str) -> bool:
        return await self.reviews.is_in_review(card_id)

    async def is_review_due(self, card_id: str) -> bool:
        return await self.reviews.is_due(card_id)

    async def review_stage(self, card_id: str) -> int | None:
        item = await self.reviews.get(card_id)
        return item.stage if item is not None else None
