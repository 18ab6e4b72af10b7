"""Deterministic random source for deployment decisions.

Every random decision the engine makes flows through a single
:class:`RandomSource`.  The source is seeded from a string (or integer) so a
session can be replayed exactly:

- Reproducibility: same seed and same call order always give the same hand
- Bug reproduction: a logged seed replays the whole session
- Audit trail: every draw can be recorded for inspection

The engine consumes the source in a fixed order: tier 1 draw, tier 2 draw,
tier 3 draw, villain coin flip (and pick), fuzzy selector draws, reinforcement
draw.

Examples:
    >>> rng = RandomSource("mission-3:0")
    >>> sorted(rng.random_permutation(4))
    [0, 1, 2, 3]
    >>> isinstance(rng.random_bool(), bool)
    True
"""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import Any


def _seed_to_int(seed: str) -> int:
    """Convert seed string to a stable 64-bit integer for random.Random().

    Args:
        seed: Seed string

    Returns:
        64-bit integer derived from SHA-256(seed)
    """
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=False)


@dataclass(slots=True)
class Draw:
    """One recorded draw from the random source."""

    kind: str
    size: int
    result: Any


class RandomSource:
    """Seedable source exposing the two primitives the rules need."""

    def __init__(self, seed: str | int | None = None, *, record: bool = False) -> None:
        self.seed = seed
        if isinstance(seed, str):
            self._random = random.Random(_seed_to_int(seed))
        else:
            self._random = random.Random(seed)
        self._record = record
        self.audit: list[Draw] = []

    def random_bool(self) -> bool:
        """Fair coin flip."""

        result = self._random.random() < 0.5
        if self._record:
            self.audit.append(Draw(kind="bool", size=2, result=result))
        return result

    def random_permutation(self, n: int) -> list[int]:
        """Return a uniform random permutation of ``range(n)``.

        Raises:
            ValueError: If n is negative
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        indices = list(range(n))
        self._random.shuffle(indices)
        if self._record:
            self.audit.append(Draw(kind="permutation", size=n, result=list(indices)))
        return indices

    def pick_index(self, n: int) -> int:
        """Pick a single index uniformly, consuming one permutation draw.

        Raises:
            ValueError: If n is not positive
        """
        if n <= 0:
            raise ValueError(f"cannot pick from an empty range, got {n}")
        return self.random_permutation(n)[0]
