"""
Daily Selector — deterministic pick of the ritual cards.

The same UTC day and language always yield the same cards in the same order,
across restarts, without persisting the selection. The generator is a port of
the 48-bit linear congruential generator behind ``java.util.Random`` so the
output matches the mobile apps card for card.
"""

from collections.abc import Iterable, Sequence
from typing import TypeVar

from lessfeed.domain.constants import DAILY_SHUFFLE_PASSES, FNV_OFFSET_BASIS, FNV_PRIME
from lessfeed.domain.models import Card, Lang

T = TypeVar("T")

_MASK_64 = (1 << 64) - 1
_MASK_48 = (1 << 48) - 1
_MULTIPLIER = 0x5DEECE66D
_ADDEND = 0xB


def _to_signed_64(value: int) -> int:
    value &= _MASK_64
    return value - (1 << 64) if value >= (1 << 63) else value


def _to_signed_32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= (1 << 31) else value


def fnv1a_64(text: str) -> int:
    """FNV-1a over UTF-8 bytes, returned as a signed 64-bit integer."""
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        # Bytes are sign-extended before the xor.
        signed = byte - 256 if byte >= 128 else byte
        h = ((h ^ (signed & _MASK_64)) * FNV_PRIME) & _MASK_64
    return _to_signed_64(h)


def daily_seed(day: str, lang: Lang) -> int:
    return fnv1a_64(f"{day}_daily_{lang.value}")


class LinearCongruentialRandom:
    """Seeded generator with ``next(bits)`` semantics over a 48-bit state."""

    def __init__(self, seed: int):
        self._seed = (seed ^ _MULTIPLIER) & _MASK_48

    def next_bits(self, bits: int) -> int:
        self._seed = (self._seed * _MULTIPLIER + _ADDEND) & _MASK_48
        return _to_signed_32(self._seed >> (48 - bits))

    def next_int(self, bound: int) -> int:
        if bound <= 0:
            raise ValueError("bound must be positive")
        if bound & -bound == bound:
            return (bound * self.next_bits(31)) >> 31
        while True:
            bits = self.next_bits(31)
            val = bits % bound
            # Reject the tail that would bias the modulo (int32 overflow check).
            if bits - val + (bound - 1) < (1 << 31):
                return val

    def shuffle(self, items: list[T]) -> None:
        """In-place Fisher-Yates, walking from the end."""
        for i in range(len(items), 1, -1):
            j = self.next_int(i)
            items[i - 1], items[j] = items[j], items[i - 1]


def seeded_order(items: Sequence[T], seed: int, passes: int = DAILY_SHUFFLE_PASSES) -> list[T]:
    rng = LinearCongruentialRandom(seed)
    shuffled = list(items)
    for _ in range(passes):
        rng.shuffle(shuffled)
    shuffled.reverse()
    return shuffled


def select_daily(
    cards: Iterable[Card],
    count: int,
    day: str,
    lang: Lang,
    excluded: set[str] | None = None,
) -> list[Card]:
    """
    Select ``count`` cards for the ritual of ``day`` (YYYY-MM-DD, UTC).

    Args:
        cards: All cards for the language, in any order.
        count: Number of cards to return.
        day: ISO date of the ritual.
        lang: Ritual language, part of the seed.
        excluded: Ids to leave out (learned and unuseful cards).
    """
    excluded = excluded or set()
    available = sorted((c for c in cards if c.id not in excluded), key=lambda c: c.id)
    if not available or count <= 0:
        return []
    return seeded_order(available, daily_seed(day, lang))[:count]
