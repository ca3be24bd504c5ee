"""
Ports (interfaces) for the feed engine.

These define the contracts that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from .models import Card, Lang


class KeyValueStore(ABC):
    """
    Port for local persistence of scalars, string sets and small JSON blobs.

    Scalar values are opaque strings (callers serialize). Every
    read-modify-write must go through ``update``/``update_set`` which hold a
    per-key lock, so overlapping toggles on the same record never lose writes.

    Implementations:
        - MemoryStore: Process-local dict, used by tests and previews.
        - JsonFileStore: Single JSON file on disk, used by the CLI.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @abstractmethod
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass

    @abstractmethod
    async def get_set(self, key: str) -> set[str]:
        """Return the string set stored at key (empty if absent)."""
        pass

    @abstractmethod
    async def set_set(self, key: str, values: set[str]) -> None:
        pass

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            yield

    async def update(
        self, key: str, fn: Callable[[str | None], str | None]
    ) -> str | None:
        """
        Atomically replace the value at key with ``fn(current)``.

        Returning None from ``fn`` removes the key. Returns the new value.
        """
        async with self.locked(key):
            new_value = fn(await self.get(key))
            if new_value is None:
                await self.remove(key)
            else:
                await self.set(key, new_value)
            return new_value

    async def update_set(
        self, key: str, fn: Callable[[set[str]], set[str]]
    ) -> set[str]:
        """Atomically replace the set at key with ``fn(current)``."""
        async with self.locked(key):
            new_values = fn(set(await self.get_set(key)))
            await self.set_set(key, new_values)
            return new_values


class CardSource(ABC):
    """
    Port for fetching published cards in one language.

    Implementations:
        - SupabaseCardSource: PostgREST over HTTP.
        - YamlCardSource: Local YAML file.
    """

    @abstractmethod
    async def fetch_cards(self, lang: Lang) -> list[Card]:
        """
        Fetch sanitized cards for the given language.

        Raises:
            CardSourceError: If the source is unreachable or malformed.
        """
        pass

    async def close(self) -> None:
        """Release network resources, if any."""
        return None


class AnalyticsSink(ABC):
    """Port for delivering aggregated analytics counts."""

    @abstractmethod
    async def send(self, card_id: str, event_type: str, lang: str, count: int) -> None:
        """Deliver one aggregated count. Raise on failure so it is re-queued."""
        pass

    async def close(self) -> None:
        return None
