"""
Settings Repository — UI/session settings as one persisted blob.

Every setter re-reads, copies and re-saves the whole structure under the
settings key lock, so the stored blob is always a complete snapshot.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError

from lessfeed.domain.constants import KEY_SETTINGS
from lessfeed.domain.models import Lang, ListMode, TextScale
from lessfeed.domain.ports import KeyValueStore
from lessfeed.domain.settings import UISettings

logger = logging.getLogger(__name__)


def decode_settings(raw: str | None, defaults: UISettings) -> UISettings:
    if not raw:
        return defaults
    try:
        return UISettings.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable settings: {e.error_count()} error(s)")
        return defaults


class SettingsRepository:
    def __init__(self, store: KeyValueStore, default_lang: Lang = Lang.EN):
        self._store = store
        self._defaults = UISettings(lang=default_lang.value)

    async def get(self) -> UISettings:
        return decode_settings(await self._store.get(KEY_SETTINGS), self._defaults)

    async def save(self, settings: UISettings) -> None:
        await self._store.set(KEY_SETTINGS, settings.model_dump_json())

    async def _modify(self, fn: Callable[[UISettings], UISettings]) -> UISettings:
        result = self._defaults

        def _apply(raw: str | None) -> str:
            nonlocal result
            result = fn(decode_settings(raw, self._defaults))
            return result.model_dump_json()

        await self._store.update(KEY_SETTINGS, _apply)
        return result

    async def update_lang(self, lang: Lang) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"lang": lang.value}))

    async def update_list_mode(self, mode: ListMode) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"list_mode": mode.value}))

    async def toggle_text_scale(self) -> UISettings:
        def _flip(s: UISettings) -> UISettings:
            new_scale = TextScale.LARGE if s.scale is TextScale.NORMAL else TextScale.NORMAL
            return s.model_copy(update={"text_scale": new_scale.value})

        return await self._modify(_flip)

    async def toggle_focus_mode(self) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"focus_mode": not s.focus_mode}))

    async def toggle_continuous_reading(self) -> UISettings:
        return await self._modify(
            lambda s: s.model_copy(update={"continuous_reading": not s.continuous_reading})
        )

    async def toggle_gestures(self) -> UISettings:
        return await self._modify(
            lambda s: s.model_copy(update={"gestures_enabled": not s.gestures_enabled})
        )

    async def toggle_dark_mode(self) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"dark_mode": not s.dark_mode}))

    async def mark_help_seen(self) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"help_seen": True}))

    async def mark_gesture_hint_seen(self) -> UISettings:
        return await self._modify(lambda s: s.model_copy(update={"gesture_hint_seen": True}))

    async def set_notifications_enabled(self, enabled: bool) -> UISettings:
        return await self._modify(
            lambda s: s.model_copy(update={"notifications_enabled": enabled})
        )

    async def set_notification_time(self, hour: int, minute: int) -> UISettings:
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid notification time {hour:02d}:{minute:02d}")
        return await self._modify(
            lambda s: s.model_copy(
                update={"notification_hour": hour, "notification_minute": minute}
            )
        )
