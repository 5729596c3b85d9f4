"""
RNG - Uniform Random Source
===========================

Single source of randomness for the engine. Every draw goes through
RandomSource.random() so a seeded run replays exactly, and so a failing
generator surfaces as RngUnavailableError instead of a hang.
"""

from __future__ import annotations

import random
from typing import Callable, Optional

from fundora_blox.blox_core.errors import RngUnavailableError


class RandomSource:
    """
    Uniform [0, 1) generator with the few derived draws the engine needs.

    Uses a private random.Random so engines never share state. A custom
    generator callable can be injected instead (tests, external RNG service).
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        generator: Optional[Callable[[], float]] = None
    ):
        """
        Initialize random source.

        Args:
            seed: Random seed for reproducibility. Random if None.
            generator: Zero-argument callable returning floats in [0, 1).
                       Overrides the seeded generator when given.
        """
        self._seed = seed
        self._rng = random.Random(seed)
        self._generator = generator

    @property
    def seed(self) -> Optional[int]:
        """Seed of the built-in generator."""
        return self._seed

    def random(self) -> float:
        """Draw a float in [0, 1)."""
        source = self._generator if self._generator is not None else self._rng.random
        try:
            value = source()
        except Exception as exc:
            raise RngUnavailableError(f"Random source failed: {exc}") from exc
        if value is None or not 0.0 <= value < 1.0:
            raise RngUnavailableError(f"Random source returned {value!r}, outside [0, 1)")
        return float(value)

    def uniform(self, low: float, high: float) -> float:
        """Draw uniformly from [low, high)."""
        return low + self.random() * (high - low)

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return self.random() < probability

    def sign(self) -> int:
        """Uniformly -1 or +1."""
        return 1 if self.random() >= 0.5 else -1

    def randrange(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        if n <= 0:
            raise ValueError(f"randrange needs a positive bound, got {n}")
        return min(int(self.random() * n), n - 1)

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reseed the built-in generator.

        Args:
            seed: New random seed. Keeps current if None.
        """
        if seed is not None:
            self._seed = seed
        self._rng = random.Random(self._seed)


class SequenceSource:
    """
    Generator that replays a fixed list of draws, for scripted scenarios.

    Raises RngUnavailableError (through RandomSource) once exhausted.
    """

    def __init__(self, values):
        self._values = list(values)
        self._index = 0

    def __call__(self) -> float:
        if self._index >= len(self._values):
            raise IndexError("scripted random sequence exhausted")
        value = self._values[self._index]
        self._index += 1
        return value

    @property
    def remaining(self) -> int:
        return len(self._values) - self._index
