"""Seeded deterministic shuffling.

``shuffle`` is a Fisher–Yates pass driven by a 32-bit xorshift generator, so
equal seeds over equal inputs always reproduce the same order. Leaving the
seed out draws one from the operating system.
"""

from __future__ import annotations

import secrets
from typing import Iterable, TypeVar

__all__ = [
    "SEED_LIMIT",
    "XorShift32",
    "permutation",
    "random_seed",
    "shuffle",
]

T = TypeVar("T")

SEED_LIMIT = 1_000_000_000
_MASK32 = 0xFFFFFFFF
# xorshift never leaves the all-zero state.
_ZERO_SEED_REPLACEMENT = 0x9E3779B9


class XorShift32:
    """xorshift32 (13, 17, 5) producing floats in ``[0, 1)``."""

    def __init__(self, seed: int) -> None:
        state = int(seed) & _MASK32
        self._state = state or _ZERO_SEED_REPLACEMENT

    def next_uint32(self) -> int:
        s = self._state
        s = (s ^ (s << 13)) & _MASK32
        s ^= s >> 17
        s = (s ^ (s << 5)) & _MASK32
        self._state = s
        return s

    def next_float(self) -> float:
        return self.next_uint32() / 4294967296

    def next_seed(self) -> int:
        """Derive a child seed in ``[0, SEED_LIMIT)``."""

        return int(self.next_float() * SEED_LIMIT)


def random_seed() -> int:
    return secrets.randbelow(SEED_LIMIT)


def shuffle(items: Iterable[T], seed: int | None = None) -> list[T]:
    """Return a permuted copy of ``items``."""

    result = list(items)
    rng = XorShift32(random_seed() if seed is None else seed)
    for i in range(len(result) - 1, 0, -1):
        j = int(rng.next_float() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


def permutation(size: int, seed: int | None = None) -> list[int]:
    """Return ``order`` where ``order[new_position] == old_position``."""

    return shuffle(range(size), seed)
