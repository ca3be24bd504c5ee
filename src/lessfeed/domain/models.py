"""
Domain models for the Less feed.

These are pure data structures with no I/O or external dependencies.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Lang(str, Enum):
    FR = "fr"
    EN = "en"
    ES = "es"

    @classmethod
    def from_code(cls, code: str | None) -> "Lang":
        """Resolve a language code, falling back to English for unknown codes."""
        for lang in cls:
            if lang.value == code:
                return lang
        return cls.EN


class ListMode(str, Enum):
    FEED = "feed"
    DAILY = "daily"
    LEARNED = "learned"
    UNUSEFUL = "unuseful"
    REVIEW = "review"
    FAVORITES = "favorites"

    @classmethod
    def from_value(cls, value: str | None) -> "ListMode":
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.FEED


class TextScale(str, Enum):
    NORMAL = "normal"
    LARGE = "large"

    @property
    def factor(self) -> float:
        return 1.12 if self is TextScale.LARGE else 1.0

    @classmethod
    def from_value(cls, value: str | None) -> "TextScale":
        for scale in cls:
            if scale.value == value:
                return scale
        return cls.NORMAL


class AnalyticsEvent(str, Enum):
    VIEW = "view"
    LEARNED = "learned"
    UNUSEFUL = "unuseful"
    FAVORITE = "favorite"
    REVIEW = "review"


def _clean(value: str | None) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


@dataclass(frozen=True)
class Card:
    """
    A single piece of learning content.

    Attributes:
        id: Stable content-addressed identifier.
        topic: Topic slug.
        difficulty: 1 (easy) to 3 (hard).
        created_at: ISO-8601 timestamp, used as the publication sort key.
        title, hook, bullets, why: Trimmed, non-empty display text.

    Build instances through ``Card.sanitize`` so the non-empty invariant holds.
    """

    id: str
    topic: str
    difficulty: int
    created_at: str
    title: str
    hook: str
    bullets: tuple[str, ...]
    why: str

    @classmethod
    def sanitize(
        cls,
        id: str,
        topic: str | None = None,
        difficulty: int | None = None,
        created_at: str | None = None,
        title: str | None = None,
        hook: str | None = None,
        bullets: Iterable[str] | None = None,
        why: str | None = None,
    ) -> "Card | None":
        """
        Return a trimmed Card, or None when any required text is blank.

        Blank bullets are dropped; if none survive the card is rejected.
        """
        clean_title = _clean(title)
        clean_hook = _clean(hook)
        clean_why = _clean(why)
        clean_bullets = tuple(
            b for b in (_clean(raw) for raw in (bullets or []) if isinstance(raw, str)) if b
        )

        if not clean_title or not clean_hook or not clean_why or not clean_bullets:
            logger.debug(f"Rejected card {id!r}: missing required text")
            return None

        return cls(
            id=id,
            topic=topic or "general",
            difficulty=difficulty if difficulty is not None else 1,
            created_at=created_at or "",
            title=clean_title,
            hook=clean_hook,
            bullets=clean_bullets,
            why=clean_why,
        )


def _as_text(value: object) -> str | None:
    # YAML loads unquoted timestamps as date objects.
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def build_cards(raw_items: Iterable[dict]) -> list[Card]:
    """Sanitize raw card dicts, silently dropping the invalid ones."""
    cards: list[Card] = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not raw.get("id"):
            continue
        card = Card.sanitize(
            id=str(raw["id"]),
            topic=raw.get("topic"),
            difficulty=raw.get("difficulty"),
            created_at=_as_text(raw.get("created_at")),
            title=raw.get("title"),
            hook=raw.get("hook"),
            bullets=raw.get("bullets"),
            why=raw.get("why"),
        )
        if card is not None:
            cards.append(card)
    return cards


@dataclass(frozen=True)
class SystemCard:
    """Support message shown inside the feed and at the end of the daily ritual."""

    title: str
    hook: str
    bullets: tuple[str, ...]
    support_title: str
    support_description: str
    watch_video_label: str
    donate_label: str
    fine_print: str

    @classmethod
    def for_lang(cls, lang: Lang) -> "SystemCard":
        return _SYSTEM_CARDS[lang]


@dataclass(frozen=True)
class OpeningCard:
    """First item of the daily ritual."""

    title: str
    subtitle: str
    start_label: str

    @classmethod
    def for_lang(cls, lang: Lang) -> "OpeningCard":
        return _OPENING_CARDS[lang]


_SYSTEM_CARDS = {
    Lang.FR: SystemCard(
        title="Less reste gratuit",
        hook="On croit au savoir accessible pour tous.",
        bullets=(
            "Pas d'abonnement, pas de paywall",
            "Pas de pub intrusive",
            "Respectueux de votre temps",
        ),
        support_title="Soutenez-nous",
        support_description="Regardez une courte pub ou faites un don pour nous aider.",
        watch_video_label="Regarder une pub",
        donate_label="Faire un don",
        fine_print="Merci de votre soutien !",
    ),
    Lang.EN: SystemCard(
        title="Less stays free",
        hook="We believe in knowledge accessible to all.",
        bullets=(
            "No subscription, no paywall",
            "No intrusive ads",
            "Respectful of your time",
        ),
        support_title="Support us",
        support_description="Watch a short ad or make a donation to help us.",
        watch_video_label="Watch an ad",
        donate_label="Make a donation",
        fine_print="Thank you for your support!",
    ),
    Lang.ES: SystemCard(
        title="Less sigue siendo gratis",
        hook="Creemos en el conocimiento accesible para todos.",
        bullets=(
            "Sin suscripción, sin paywall",
            "Sin publicidad intrusiva",
            "Respetuoso con tu tiempo",
        ),
        support_title="Apóyanos",
        support_description="Mira un breve anuncio o haz una donación para ayudarnos.",
        watch_video_label="Ver un anuncio",
        donate_label="Hacer una donación",
        fine_print="¡Gracias por tu apoyo!",
    ),
}

_OPENING_CARDS = {
    Lang.FR: OpeningCard(
        title="Votre rituel du jour",
        subtitle="Quatre idées, quelques minutes.",
        start_label="Commencer",
    ),
    Lang.EN: OpeningCard(
        title="Your daily ritual",
        subtitle="Four ideas, a few minutes.",
        start_label="Start",
    ),
    Lang.ES: OpeningCard(
        title="Tu ritual diario",
        subtitle="Cuatro ideas, unos minutos.",
        start_label="Empezar",
    ),
}


# ---------- Feed items ----------

SYSTEM_ITEM_ID = "system_card"
OPENING_ITEM_ID = "daily_opening"


@dataclass(frozen=True)
class Content:
    card: Card

    @property
    def id(self) -> str:
        return self.card.id


@dataclass(frozen=True)
class System:
    card: SystemCard

    @property
    def id(self) -> str:
        return SYSTEM_ITEM_ID


@dataclass(frozen=True)
class Opening:
    card: OpeningCard

    @property
    def id(self) -> str:
        return OPENING_ITEM_ID


FeedItem = Content | System | Opening


def is_content_id(item_id: str) -> bool:
    return item_id not in (SYSTEM_ITEM_ID, OPENING_ITEM_ID)
