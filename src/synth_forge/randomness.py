"""
Injectable random source.

Every random decision of a generation run goes through one RandomSource
instance so that a seed reproduces the run exactly.
"""

from __future__ import annotations

import math
import uuid
from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """
    Seeded random source exposing ``next_float()`` in [0, 1).

    All helpers are derived from ``next_float`` so a subclass overriding it
    controls every draw.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next_float(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._rng.random())

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in the inclusive range [low, high]."""
        if high < low:
            low, high = high, low
        value = low + int(math.floor(self.next_float() * (high - low + 1)))
        return min(value, high)

    def index(self, length: int) -> int:
        """Uniform index into a sequence of the given length."""
        return self.randint(0, length - 1)

    def choice(self, values: Sequence[T]) -> T:
        """Uniform element of a non-empty sequence."""
        return values[self.index(len(values))]

    def hex_digits(self, length: int) -> str:
        return "".join("0123456789ABCDEF"[self.randint(0, 15)] for _ in range(length))

    def uuid4(self) -> str:
        """Random version-4 UUID string."""
        raw = bytes(self.randint(0, 255) for _ in range(16))
        return str(uuid.UUID(bytes=raw, version=4))
