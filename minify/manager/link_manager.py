"""
LinkManager module for Minify.

Responsibilities:
    - Create links: validate the destination, allocate a slug, insert
    - Extend link expiry (owner only)
    - Hard-delete links (owner only)
    - List an owner's live links with pagination

Design notes:
    - Creation is candidate-then-commit. The allocator's existence probe can
      race with another creator; the store's unique index decides, and a
      violation on insert is reported as `SlugTaken`, never as a generic
      failure. Nothing is retried automatically.
    - The caller identity (`owner_id`) is always passed in, already
      authenticated. Nothing here looks up sessions.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from urllib.parse import urlparse

from ..config import settings
from ..errors import (
    AccountInactive,
    AccountNotFound,
    InvalidURL,
    LinkNotFound,
    NotLinkOwner,
    SlugTaken,
    UniqueConstraintViolation,
)
from ..models import Account, Link, LinkStatus, utcnow
from ..storage.base import BaseStorage
from .lifecycle import LifecycleEngine
from .slug_allocator import SlugAllocator

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ListedLink:
    link: Link
    status: LinkStatus


@dataclass(frozen=True)
class LinkPage:
    items: List[ListedLink]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class LinkManager:
    """
    Coordinates link creation and owner-side link maintenance.

    Args:
        storage: Link/account store.
        allocator: Slug allocator (defaults to one over the same store).
        lifecycle: Lifecycle rules (defaults from settings).
        clock: Source of "now"; injectable for tests.
        ttl_days: Lifetime of a newly created link.
    """

    def __init__(
        self,
        storage: BaseStorage,
        allocator: Optional[SlugAllocator] = None,
        lifecycle: Optional[LifecycleEngine] = None,
        clock: Callable[[], datetime] = utcnow,
        ttl_days: Optional[int] = None,
    ):
        self.storage = storage
        self.allocator = allocator or SlugAllocator(storage)
        self.lifecycle = lifecycle or LifecycleEngine()
        self.clock = clock
        self.ttl_days = ttl_days if ttl_days is not None else settings.LINK_TTL_DAYS

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    def _validate_url(self, url: str) -> None:
        """
        Validate that a URL has an http/https scheme and a host.

        Raises:
            InvalidURL: If the URL is malformed.
        """
        if not url or not isinstance(url, str):
            raise InvalidURL("Original URL is required")
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise InvalidURL("Invalid URL format")

    def require_active_account(self, account_id: str) -> Account:
        account = self.storage.find_account(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id!r} not found")
        if account.is_deleted:
            raise AccountInactive("Account is deleted; reactivate it first")
        return account

    def _owned_link(self, owner_id: str, link_id: str) -> Link:
        link = self.storage.find_link(link_id)
        if link is None or link.owner_id != owner_id:
            raise LinkNotFound("Link not found or unauthorized")
        return link

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create_link(self, owner_id: str, original_url: str, custom_slug: Optional[str] = None) -> Link:
        """
        Create a link for `owner_id`.

        Raises:
            InvalidURL, InvalidFormat, ReservedSlug: bad input.
            AccountNotFound, AccountInactive: owner cannot create links.
            SlugTaken: slug already used, including a lost insert race.
            AllocationExhausted: no free random slug within the attempt bound.
        """
        self._validate_url(original_url)
        self.require_active_account(owner_id)

        slug = self.allocator.allocate(custom_slug)
        link = Link.new(slug, original_url, owner_id, now=self.clock(), ttl_days=self.ttl_days)
        try:
            created = self.storage.insert_link(link)
        except UniqueConstraintViolation as exc:
            logger.info("Insert for slug %r lost to a concurrent writer", slug)
            raise SlugTaken(slug) from exc

        logger.info("Created link %r -> %s for account %r", created.slug, created.original_url, owner_id)
        return created

    def extend_link(self, owner_id: str, link_id: str) -> Link:
        """Add the extension period to the link's current expiry and reactivate it."""
        link = self._owned_link(owner_id, link_id)
        extended = self.lifecycle.extend(link, self.clock())
        updated = self.storage.update_link(
            link_id, {"expires_at": extended.expires_at, "is_active": True}
        )
        if updated is None:
            raise LinkNotFound("Link not found or unauthorized")
        logger.info("Extended link %r to %s", updated.slug, updated.expires_at.isoformat())
        return updated

    def delete_link(self, owner_id: str, link_id: str) -> None:
        """
        Hard-delete a link. Only its creator may do this.

        Raises:
            LinkNotFound: no such link.
            NotLinkOwner: link belongs to another account.
        """
        link = self.storage.find_link(link_id)
        if link is None:
            raise LinkNotFound("Link not found")
        if link.owner_id != owner_id:
            raise NotLinkOwner("Unauthorized to delete this link")
        if not self.storage.delete_link(link_id):
            raise LinkNotFound("Link not found")
        logger.info("Deleted link %r (%s)", link.slug, link_id)

    def list_links(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> LinkPage:
        """
        Page through the owner's active, unexpired links, newest first.

        `page` is 1-based; `limit` is clamped to [1, MAX_PAGE_SIZE].
        """
        page = max(1, page)
        limit = max(1, min(MAX_PAGE_SIZE, limit))
        now = now or self.clock()

        live = [
            ListedLink(link=link, status=self.lifecycle.classify(link, now))
            for link in self.storage.list_links_by_owner(owner_id)
            if self.lifecycle.is_live(link, now)
        ]
        offset = (page - 1) * limit
        return LinkPage(items=live[offset:offset + limit], page=page, limit=limit, total=len(live))
