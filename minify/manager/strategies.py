"""
Strategies for random slug generation in Minify.

Provided strategies:
- RandomStrategy: uniform random string over the 62-symbol alphabet
  (lowercase, uppercase, digits), default length 6.

Strategies only produce candidates. Uniqueness is decided by the allocator's
probe and, ultimately, by the store's unique index on `links.slug`.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

SLUG_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class BaseStrategy(ABC):
    """Abstract base for slug generation strategies."""

    @abstractmethod
    def generate(self, length: int) -> str:
        raise NotImplementedError


@dataclass
class RandomStrategy(BaseStrategy):
    """
    Random 62-symbol slugs.

    `rng` defaults to `random.SystemRandom()`; tests may pass a seeded
    `random.Random` for reproducible sequences.
    """
    rng: Optional[random.Random] = field(default=None)

    def __post_init__(self):
        if self.rng is None:
            self.rng = random.SystemRandom()

    def generate(self, length: int = 6) -> str:
        return "".join(self.rng.choice(SLUG_ALPHABET) for _ in range(length))
