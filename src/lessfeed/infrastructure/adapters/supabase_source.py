import logging
from typing import Any

import httpx

from lessfeed.domain.constants import REQUEST_TIMEOUT
from lessfeed.domain.errors import CardSourceError
from lessfeed.domain.models import Card, Lang
from lessfeed.domain.ports import CardSource

logger = logging.getLogger(__name__)

CARDS_QUERY = {
    "select": "*,card_translations(*)",
    "is_published": "eq.true",
}


def _text(translation: dict[str, Any] | None, field: str) -> str | None:
    if not translation:
        return None
    value = translation.get(field)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _bullets(translation: dict[str, Any] | None) -> list[str] | None:
    if not translation:
        return None
    value = translation.get("bullets")
    if not isinstance(value, list):
        return None
    bullets = [str(b) for b in value if isinstance(b, str | int | float)]
    return bullets or None


def pick_translation(
    translations: list[dict[str, Any]], lang: Lang
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Return (best translation for lang, English translation)."""
    by_lang = {t.get("lang"): t for t in translations if isinstance(t, dict)}
    english = by_lang.get(Lang.EN.value)
    chosen = by_lang.get(lang.value) or english
    if chosen is None and translations:
        first = translations[0]
        chosen = first if isinstance(first, dict) else None
    return chosen, english


def card_from_row(row: dict[str, Any], lang: Lang) -> Card | None:
    """Build a card from one PostgREST row, filling blank fields from English."""
    card_id = row.get("id")
    translations = row.get("card_translations") or []
    if not card_id or not translations:
        logger.debug(f"Skipping card {card_id!r}: no translations")
        return None

    chosen, english = pick_translation(translations, lang)
    if chosen is None:
        return None

    return Card.sanitize(
        id=str(card_id),
        topic=row.get("topic"),
        difficulty=row.get("difficulty"),
        created_at=row.get("created_at"),
        title=_text(chosen, "title") or _text(english, "title"),
        hook=_text(chosen, "hook") or _text(english, "hook"),
        bullets=_bullets(chosen) or _bullets(english),
        why=_text(chosen, "why") or _text(english, "why"),
    )


class SupabaseCardSource(CardSource):
    """Reads published cards and their translations over the PostgREST API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_cards(self, lang: Lang) -> list[Card]:
        logger.debug(f"Fetching cards for lang={lang.value} from {self.url}")
        client = await self._get_client()
        try:
            resp = await client.get(
                f"{self.url}/rest/v1/cards", params=CARDS_QUERY, headers=self.headers
            )
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPError as e:
            raise CardSourceError(f"Card request failed: {e}") from e
        except ValueError as e:
            raise CardSourceError(f"Invalid card payload: {e}") from e

        if not isinstance(rows, list):
            raise CardSourceError("Invalid card payload: expected a list")

        cards = [
            card
            for card in (card_from_row(row, lang) for row in rows if isinstance(row, dict))
            if card is not None
        ]
        cards.sort(key=lambda c: c.created_at, reverse=True)

        if rows and not cards:
            logger.warning("Cards found but none passed sanitization")
        logger.info(f"Fetched {len(cards)}/{len(rows)} cards for {lang.value}")
        return cards
