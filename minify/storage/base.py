"""
Base storage interface for Minify.

Purpose:
    Define the narrow contract the core consumes so that backends
    (in-memory, PostgreSQL) can be swapped without touching the manager layer.

Consistency:
    Every method is a single round trip with single-key consistency. The core
    never holds a lock across calls; the only cross-request guarantee it relies
    on is the uniqueness of `links.slug`, surfaced by `insert_link` as
    `UniqueConstraintViolation`.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover`.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import Account, Link

LINK_PATCH_FIELDS = frozenset({"original_url", "expires_at", "is_active"})
ACCOUNT_PATCH_FIELDS = frozenset({"is_deleted", "deleted_at"})


def check_patch(patch: Dict[str, Any], allowed: frozenset) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unsupported patch fields: {sorted(unknown)}")


class BaseStorage(ABC):
    """Abstract base class for link/account storage backends."""

    # ---- Links: reads -----------------------------------------------------

    @abstractmethod  # pragma: no cover
    def find_link_by_slug(self, slug: str) -> Optional[Link]:
        """Exact-match lookup by slug (active or not)."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def find_link(self, link_id: str) -> Optional[Link]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def slug_exists(self, slug: str) -> bool:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_links_by_owner(self, owner_id: str) -> List[Link]:
        """All links of an owner, newest first."""
        raise NotImplementedError

    # ---- Links: writes ----------------------------------------------------

    @abstractmethod  # pragma: no cover
    def insert_link(self, link: Link) -> Link:
        """
        Persist a new link.

        Raises:
            UniqueConstraintViolation: if the slug is already stored.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update_link(self, link_id: str, patch: Dict[str, Any]) -> Optional[Link]:
        """Apply `patch` to one link. Returns the updated link, or None if missing."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update_links_by_owner(self, owner_id: str, patch: Dict[str, Any]) -> int:
        """Bulk patch every link of an owner. Returns the number of rows matched."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_link(self, link_id: str) -> bool:
        raise NotImplementedError

    # ---- Accounts ---------------------------------------------------------

    @abstractmethod  # pragma: no cover
    def find_account(self, account_id: str) -> Optional[Account]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def insert_account(self, account: Account, password_hash: Optional[str] = None) -> Account:
        """
        Persist a new account, with its login credential when one is given.

        Account row and credential are written together or not at all.

        Raises:
            UniqueConstraintViolation: if the account id already exists.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update_account(self, account_id: str, patch: Dict[str, Any]) -> Optional[Account]:
        raise NotImplementedError

    # ---- Credentials ------------------------------------------------------

    @abstractmethod  # pragma: no cover
    def find_password_hash(self, account_id: str) -> Optional[str]:
        """Stored "salt$digest" for the account, or None if it has no credential."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update_password_hash(self, account_id: str, password_hash: str) -> bool:
        """Replace the account's credential. Returns False if the account is missing."""
        raise NotImplementedError
