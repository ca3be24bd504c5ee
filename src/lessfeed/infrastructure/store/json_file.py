"""
JSON file KeyValueStore.

The whole store lives in one file:

    {"values": {"key": "..."}, "sets": {"key": ["a", "b"]}}

Every write rewrites the file through a temp file + rename so a crash never
leaves a half-written store behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from lessfeed.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class _StoreData:
    values: dict[str, str]
    sets: dict[str, list[str]]


class JsonFileStore(KeyValueStore):
    """
    Disk-backed store. The in-memory copy is authoritative for the process;
    a failed write is logged and retried on the next mutation.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        self._data: _StoreData | None = None

    def _load(self) -> _StoreData:
        if self._data is not None:
            return self._data
        self._data = _StoreData({}, {})
        if not self.path.exists():
            return self._data
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read store {self.path}, starting empty: {e}")
            return self._data
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring malformed store {self.path}")
            return self._data

        values = raw.get("values", {})
        sets = raw.get("sets", {})
        if isinstance(values, dict):
            self._data.values.update({k: v for k, v in values.items() if isinstance(v, str)})
        if isinstance(sets, dict):
            self._data.sets.update(
                {
                    k: [s for s in v if isinstance(s, str)]
                    for k, v in sets.items()
                    if isinstance(v, list)
                }
            )
        return self._data

    def _flush(self) -> None:
        data = self._load()
        payload = {"values": data.values, "sets": data.sets}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning(f"Failed to write store {self.path}, keeping changes in memory: {e}")

    async def get(self, key: str) -> str | None:
        return self._load().values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._load().values[key] = value
        self._flush()

    async def remove(self, key: str) -> None:
        data = self._load()
        data.values.pop(key, None)
        data.sets.pop(key, None)
        self._flush()

    async def get_set(self, key: str) -> set[str]:
        return set(self._load().sets.get(key, []))

    async def set_set(self, key: str, values: set[str]) -> None:
        self._load().sets[key] = sorted(values)
        self._flush()
