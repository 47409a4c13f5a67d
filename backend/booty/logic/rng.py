"""
Random number helpers for seating order and dice.

All randomness flows through an injected random.Random so tests can seed
or stub it. The default generator is seeded from the OS entropy pool.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")


def create_rng(seed: int | None = None) -> random.Random:
    """Return a generator seeded with `seed`, or with system randomness when None."""
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


def fisher_yates_shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a uniformly random permutation of `items` without modifying it."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result
