import json
from unittest.mock import AsyncMock

import pytest

from lessfeed.application.analytics import AnalyticsAggregator, event_key
from lessfeed.domain.constants import KEY_PENDING_ANALYTICS
from lessfeed.domain.models import AnalyticsEvent, Lang


def test_track_aggregates_per_key(store):
    agg = AnalyticsAggregator(store)
    agg.track("c1", AnalyticsEvent.VIEW, Lang.FR)
    agg.track("c1", AnalyticsEvent.VIEW, Lang.FR)
    agg.track("c1", AnalyticsEvent.LEARNED, Lang.FR)
    assert agg.pending == {"c1|view|fr": 2, "c1|learned|fr": 1}
    assert event_key("c1", AnalyticsEvent.VIEW, Lang.FR) == "c1|view|fr"


@pytest.mark.asyncio
async def test_flush_sends_one_call_per_key(store):
    agg = AnalyticsAggregator(store)
    agg.track("c1", AnalyticsEvent.VIEW, Lang.EN)
    agg.track("c1", AnalyticsEvent.VIEW, Lang.EN)
    sink = AsyncMock()

    assert await agg.flush(sink) == 1
    sink.send.assert_awaited_once_with("c1", "view", "en", 2)
    assert agg.pending == {}
    assert json.loads(await store.get(KEY_PENDING_ANALYTICS)) == {}


@pytest.mark.asyncio
async def test_failed_sends_are_requeued_and_persisted(store):
    agg = AnalyticsAggregator(store)
    agg.track("ok", AnalyticsEvent.VIEW, Lang.EN)
    agg.track("bad", AnalyticsEvent.FAVORITE, Lang.EN)

    async def send(card_id, event_type, lang, count):
        if card_id == "bad":
            raise RuntimeError("offline")

    sink = AsyncMock()
    sink.send.side_effect = send

    assert await agg.flush(sink) == 1
    assert agg.pending == {"bad|favorite|en": 1}
    assert json.loads(await store.get(KEY_PENDING_ANALYTICS)) == {"bad|favorite|en": 1}


@pytest.mark.asyncio
async def test_load_pending_merges_persisted_counts(store):
    await store.set(KEY_PENDING_ANALYTICS, json.dumps({"c1|view|fr": 3, "junk": "x"}))
    agg = AnalyticsAggregator(store)
    agg.track("c1", AnalyticsEvent.VIEW, Lang.FR)
    await agg.load_pending()
    assert agg.pending == {"c1|view|fr": 4}


@pytest.mark.asyncio
async def test_load_pending_tolerates_corruption(store):
    await store.set(KEY_PENDING_ANALYTICS, "{{{")
    agg = AnalyticsAggregator(store)
    await agg.load_pending()
    assert agg.pending == {}


@pytest.mark.asyncio
async def test_flush_with_nothing_pending(store):
    sink = AsyncMock()
    assert await AnalyticsAggregator(store).flush(sink) == 0
    sink.send.assert_not_awaited()
