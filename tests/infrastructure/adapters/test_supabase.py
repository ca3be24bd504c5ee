import json

import httpx
import pytest

from lessfeed.domain.errors import CardSourceError
from lessfeed.domain.models import Lang
from lessfeed.infrastructure.adapters import SupabaseAnalyticsSink, SupabaseCardSource
from lessfeed.infrastructure.adapters.supabase_source import card_from_row

BASE = "https://project.supabase.co"


def translation(lang, **overrides):
    data = {
        "lang": lang,
        "title": f"Title {lang}",
        "hook": f"Hook {lang}",
        "bullets": [f"Point {lang}"],
        "why": f"Why {lang}",
    }
    data.update(overrides)
    return data


def row(card_id, created_at, *translations, **extra):
    return {
        "id": card_id,
        "topic": "history",
        "difficulty": 2,
        "created_at": created_at,
        "is_published": True,
        "card_translations": list(translations),
        **extra,
    }


def source_for(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseCardSource(BASE, "anon-key", client=client)


# ---------- Row mapping ----------


def test_prefers_requested_language():
    card = card_from_row(row("c1", "2025", translation("en"), translation("fr")), Lang.FR)
    assert card.title == "Title fr"
    assert card.topic == "history"
    assert card.difficulty == 2


def test_blank_fields_fall_back_to_english():
    card = card_from_row(
        row("c1", "2025", translation("en"), translation("es", hook="  ", bullets=[])),
        Lang.ES,
    )
    assert card.title == "Title es"
    assert card.hook == "Hook en"
    assert card.bullets == ("Point en",)


def test_missing_language_uses_english_then_first():
    assert card_from_row(row("c1", "2025", translation("en")), Lang.FR).title == "Title en"
    assert card_from_row(row("c2", "2025", translation("es")), Lang.FR).title == "Title es"


def test_rows_without_translations_are_dropped():
    assert card_from_row(row("c1", "2025"), Lang.EN) is None


def test_invalid_translation_is_dropped():
    assert card_from_row(row("c1", "2025", translation("en", why="")), Lang.EN) is None


# ---------- HTTP ----------


@pytest.mark.asyncio
async def test_fetch_cards_sorts_newest_first():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(
            200,
            json=[
                row("old", "2024-01-01T00:00:00Z", translation("en")),
                row("new", "2025-01-01T00:00:00Z", translation("en")),
                row("broken", "2025-02-01T00:00:00Z"),
            ],
        )

    cards = await source_for(handler).fetch_cards(Lang.EN)

    assert [c.id for c in cards] == ["new", "old"]
    request = captured["request"]
    assert request.url.path == "/rest/v1/cards"
    assert request.url.params["is_published"] == "eq.true"
    assert request.url.params["select"] == "*,card_translations(*)"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_http_error_raises_card_source_error():
    source = source_for(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(CardSourceError):
        await source.fetch_cards(Lang.EN)


@pytest.mark.asyncio
async def test_transport_error_raises_card_source_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(CardSourceError):
        await source_for(handler).fetch_cards(Lang.EN)


@pytest.mark.asyncio
async def test_non_list_payload_raises():
    source = source_for(lambda request: httpx.Response(200, json={"message": "nope"}))
    with pytest.raises(CardSourceError):
        await source.fetch_cards(Lang.EN)


@pytest.mark.asyncio
async def test_invalid_json_raises():
    source = source_for(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(CardSourceError):
        await source.fetch_cards(Lang.EN)


# ---------- Analytics sink ----------


@pytest.mark.asyncio
async def test_analytics_sink_calls_rpc():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(204)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sink = SupabaseAnalyticsSink(BASE + "/", "anon-key", client=client)
    await sink.send("c1", "view", "fr", 3)
    await sink.close()

    assert captured["path"] == "/rest/v1/rpc/upsert_analytics"
    assert captured["body"] == {
        "p_card_id": "c1",
        "p_event_type": "view",
        "p_lang": "fr",
        "p_count": 3,
    }


@pytest.mark.asyncio
async def test_analytics_sink_raises_on_failure():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    sink = SupabaseAnalyticsSink(BASE, "anon-key", client=client)
    with pytest.raises(httpx.HTTPStatusError):
        await sink.send("c1", "view", "fr", 1)
