"""
Local card source.

Reads a YAML file shaped either as a plain list of cards or as a mapping of
language code to list of cards::

    en:
      - id: c1
        topic: science
        title: ...
        hook: ...
        bullets: [..., ...]
        why: ...

Language entries missing for a language fall back to English.
"""

import logging
from pathlib import Path

import yaml

from lessfeed.domain.errors import CardSourceError
from lessfeed.domain.models import Card, Lang, build_cards
from lessfeed.domain.ports import CardSource

logger = logging.getLogger(__name__)


class YamlCardSource(CardSource):
    def __init__(self, path: Path):
        self.path = Path(path)

    async def fetch_cards(self, lang: Lang) -> list[Card]:
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise CardSourceError(f"Cannot read {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise CardSourceError(f"Invalid YAML in {self.path}: {e}") from e

        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get(lang.value) or data.get(Lang.EN.value) or []
        if not isinstance(data, list):
            raise CardSourceError(f"Unexpected card layout in {self.path}")

        cards = build_cards(data)
        cards.sort(key=lambda c: c.created_at, reverse=True)
        logger.debug(f"Loaded {len(cards)} cards for {lang.value} from {self.path}")
        return cards
