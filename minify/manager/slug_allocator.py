"""
SlugAllocator module for Minify.

Responsibilities:
    - Normalize and validate custom slugs against the slug policy
    - Keep user slugs out of the reserved namespace (system routes)
    - Generate random slugs with a bounded number of existence probes

Design notes:
    - `allocate` is a pure decision: it returns a candidate and writes nothing.
      The caller inserts it, and the store's unique index on `links.slug` is
      the final arbiter. The existence probe is only an optimization.
    - The reserved set is checked before the live table, so a reserved word
      never costs a store read.

Slug policy:
    4-20 characters from [a-z0-9-], no leading/trailing hyphen, no "--".
    Surrounding whitespace is trimmed; uppercase input is rejected rather than
    silently folded, so the slug a user sees is the slug they typed.
"""

import logging
import re
from typing import FrozenSet, Iterable, Optional

from ..config import settings
from ..errors import AllocationExhausted, InvalidFormat, ReservedSlug, SlugTaken
from ..storage.base import BaseStorage
from .strategies import BaseStrategy, RandomStrategy

logger = logging.getLogger(__name__)

SLUG_MIN_LENGTH = 4
SLUG_MAX_LENGTH = 20
SlugPattern = re.compile(r"^[a-z0-9-]+$")

# First path segments used by the service itself, plus obvious product pages.
RESERVED_SLUGS: FrozenSet[str] = frozenset({
    "about",
    "account",
    "accounts",
    "admin",
    "dashboard",
    "docs",
    "health",
    "help",
    "links",
    "login",
    "logout",
    "minify",
    "openapi",
    "privacy",
    "profile",
    "redoc",
    "settings",
    "signup",
    "static",
    "support",
    "terms",
})


def normalize_slug(raw: str) -> str:
    return raw.strip()


def validate_slug(raw: str) -> str:
    """
    Normalize a custom slug and check it against the policy.

    Returns:
        str: The normalized slug.

    Raises:
        InvalidFormat: With a user-facing message naming the broken rule.
    """
    slug = normalize_slug(raw)
    if not slug:
        raise InvalidFormat("Slug cannot be empty")
    if len(slug) < SLUG_MIN_LENGTH:
        raise InvalidFormat(f"Slug must be at least {SLUG_MIN_LENGTH} characters")
    if len(slug) > SLUG_MAX_LENGTH:
        raise InvalidFormat(f"Slug must be {SLUG_MAX_LENGTH} characters or less")
    if not SlugPattern.match(slug):
        raise InvalidFormat("Slug can only contain lowercase letters, numbers, and hyphens")
    if slug.startswith("-") or slug.endswith("-"):
        raise InvalidFormat("Slug cannot start or end with a hyphen")
    if "--" in slug:
        raise InvalidFormat("Slug cannot contain consecutive hyphens")
    return slug


class SlugAllocator:
    """
    Decides which slug a new link gets.

    Args:
        storage: Store probed for existing slugs.
        strategy: Random slug generator (defaults to RandomStrategy).
        reserved: Extra reserved words, merged with RESERVED_SLUGS and
            settings.EXTRA_RESERVED_SLUGS.
        max_attempts: Random probes before AllocationExhausted.
        length: Random slug length.
    """

    def __init__(
        self,
        storage: BaseStorage,
        strategy: Optional[BaseStrategy] = None,
        reserved: Optional[Iterable[str]] = None,
        max_attempts: Optional[int] = None,
        length: Optional[int] = None,
    ):
        self.storage = storage
        self.strategy = strategy or RandomStrategy()
        self.reserved = RESERVED_SLUGS | settings.EXTRA_RESERVED_SLUGS | frozenset(reserved or ())
        self.max_attempts = max_attempts if max_attempts is not None else settings.MAX_ALLOCATION_ATTEMPTS
        self.length = length or settings.RANDOM_SLUG_LENGTH

    def is_reserved(self, slug: str) -> bool:
        return slug.lower() in self.reserved

    def allocate(self, custom: Optional[str] = None) -> str:
        """
        Pick a slug: the validated custom one, or a fresh random one.

        A blank custom slug means "generate one for me".

        Raises:
            InvalidFormat, ReservedSlug, SlugTaken: custom path.
            AllocationExhausted: random path, every probe collided.
        """
        if custom is not None and custom.strip():
            return self._allocate_custom(custom)
        return self._allocate_random()

    def _allocate_custom(self, custom: str) -> str:
        slug = validate_slug(custom)
        if self.is_reserved(slug):
            raise ReservedSlug(slug)
        if self.storage.slug_exists(slug):
            raise SlugTaken(slug)
        return slug

    def _allocate_random(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.strategy.generate(self.length)
            if self.is_reserved(candidate):
                continue
            if not self.storage.slug_exists(candidate):
                return candidate
            logger.debug("Random slug %r collided (attempt %d/%d)", candidate, attempt, self.max_attempts)
        logger.warning("Slug allocation exhausted after %d attempts", self.max_attempts)
        raise AllocationExhausted(self.max_attempts)
