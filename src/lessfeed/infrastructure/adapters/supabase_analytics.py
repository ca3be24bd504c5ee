import logging

import httpx

from lessfeed.domain.constants import REQUEST_TIMEOUT
from lessfeed.domain.ports import AnalyticsSink

logger = logging.getLogger(__name__)


class SupabaseAnalyticsSink(AnalyticsSink):
    """Delivers aggregated counts through the ``upsert_analytics`` RPC."""

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

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, card_id: str, event_type: str, lang: str, count: int) -> None:
        client = await self._get_client()
        resp = await client.post(
            f"{self.url}/rest/v1/rpc/upsert_analytics",
            json={
                "p_card_id": card_id,
                "p_event_type": event_type,
                "p_lang": lang,
                "p_count": count,
            },
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._api_key}",
            },
        )
        resp.raise_for_status()
        logger.debug(f"Sent {event_type} x{count} for {card_id} ({lang})")
