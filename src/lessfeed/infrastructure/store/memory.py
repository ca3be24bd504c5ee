"""In-process KeyValueStore used by tests and previews."""

from __future__ import annotations

from lessfeed.domain.ports import KeyValueStore


class MemoryStore(KeyValueStore):
    def __init__(self) -> None:
        super().__init__()
        self._values: dict[str, str] = {}
        self._sets: dict[str, set[str]] = {}

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)
        self._sets.pop(key, None)

    async def get_set(self, key: str) -> set[str]:
        return set(self._sets.get(key, set()))

    async def set_set(self, key: str, values: set[str]) -> None:
        self._sets[key] = set(values)

    def snapshot(self) -> dict[str, object]:
        """Debug view of everything stored."""
        return {**self._values, **{k: sorted(v) for k, v in self._sets.items()}}
