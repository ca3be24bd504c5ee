import pytest

from lessfeed.application.settings_repo import SettingsRepository
from lessfeed.domain.constants import KEY_SETTINGS
from lessfeed.domain.models import Lang, ListMode, TextScale


@pytest.fixture
def repo(store):
    return SettingsRepository(store, default_lang=Lang.FR)


@pytest.mark.asyncio
async def test_defaults(repo):
    settings = await repo.get()
    assert settings.language is Lang.FR
    assert settings.mode is ListMode.FEED
    assert settings.gestures_enabled
    assert (settings.notification_hour, settings.notification_minute) == (9, 0)


@pytest.mark.asyncio
async def test_setters_persist_whole_snapshot(repo):
    await repo.update_lang(Lang.ES)
    await repo.update_list_mode(ListMode.REVIEW)
    await repo.toggle_text_scale()
    await repo.toggle_dark_mode()
    await repo.mark_help_seen()

    settings = await repo.get()
    assert settings.language is Lang.ES
    assert settings.mode is ListMode.REVIEW
    assert settings.scale is TextScale.LARGE
    assert settings.dark_mode
    assert settings.help_seen


@pytest.mark.asyncio
async def test_toggles_flip_back(repo):
    assert (await repo.toggle_focus_mode()).focus_mode
    assert not (await repo.toggle_focus_mode()).focus_mode
    assert not (await repo.toggle_gestures()).gestures_enabled
    assert (await repo.toggle_continuous_reading()).continuous_reading
    assert (await repo.toggle_text_scale()).scale is TextScale.LARGE
    assert (await repo.toggle_text_scale()).scale is TextScale.NORMAL


@pytest.mark.asyncio
async def test_notification_time_validation(repo):
    settings = await repo.set_notification_time(21, 30)
    assert (settings.notification_hour, settings.notification_minute) == (21, 30)
    with pytest.raises(ValueError):
        await repo.set_notification_time(24, 0)
    with pytest.raises(ValueError):
        await repo.set_notification_time(8, 60)


@pytest.mark.asyncio
async def test_unknown_keys_are_ignored_and_corruption_falls_back(repo, store):
    await store.set(KEY_SETTINGS, '{"lang": "es", "legacy_flag": true}')
    assert (await repo.get()).language is Lang.ES

    await store.set(KEY_SETTINGS, "garbage")
    assert (await repo.get()).language is Lang.FR
