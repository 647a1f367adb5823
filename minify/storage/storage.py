"""
Storage module for Minify (in-memory implementation).

Responsibilities:
    - Keep links (indexed by id and by slug) and accounts
    - Enforce slug uniqueness atomically on insert
    - Provide single-call bulk updates for account cascades
    - Keep each account's password hash beside its row

Design:
    - Reference implementation of the BaseStorage contract, used by tests and
      the default "memory" backend.
    - A single lock makes each call atomic, which is exactly the guarantee a
      database gives per statement; nothing is held across calls.
"""

import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..errors import UniqueConstraintViolation
from ..models import Account, Link
from .base import ACCOUNT_PATCH_FIELDS, LINK_PATCH_FIELDS, BaseStorage, check_patch


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty storage.

        Internal schema:
            self.links    = { link_id: Link }
            self.slugs    = { slug: link_id }      (the unique index)
            self.accounts = { account_id: Account }
            self.password_hashes = { account_id: "salt$digest" }
        """
        self.links: Dict[str, Link] = {}
        self.slugs: Dict[str, str] = {}
        self.accounts: Dict[str, Account] = {}
        self.password_hashes: Dict[str, str] = {}
        self._lock = threading.Lock()

    # ---- Links: reads -----------------------------------------------------

    def find_link_by_slug(self, slug: str) -> Optional[Link]:
        with self._lock:
            link_id = self.slugs.get(slug)
            return self.links.get(link_id) if link_id else None

    def find_link(self, link_id: str) -> Optional[Link]:
        with self._lock:
            return self.links.get(link_id)

    def slug_exists(self, slug: str) -> bool:
        with self._lock:
            return slug in self.slugs

    def list_links_by_owner(self, owner_id: str) -> List[Link]:
        with self._lock:
            owned = [link for link in self.links.values() if link.owner_id == owner_id]
        return sorted(owned, key=lambda link: link.created_at, reverse=True)

    # ---- Links: writes ----------------------------------------------------

    def insert_link(self, link: Link) -> Link:
        with self._lock:
            if link.slug in self.slugs:
                raise UniqueConstraintViolation("slug", link.slug)
            self.links[link.id] = link
            self.slugs[link.slug] = link.id
            return link

    def update_link(self, link_id: str, patch: Dict[str, Any]) -> Optional[Link]:
        check_patch(patch, LINK_PATCH_FIELDS)
        with self._lock:
            current = self.links.get(link_id)
            if current is None:
                return None
            updated = replace(current, **patch)
            self.links[link_id] = updated
            return updated

    def update_links_by_owner(self, owner_id: str, patch: Dict[str, Any]) -> int:
        check_patch(patch, LINK_PATCH_FIELDS)
        with self._lock:
            matched = [lid for lid, link in self.links.items() if link.owner_id == owner_id]
            for lid in matched:
                self.links[lid] = replace(self.links[lid], **patch)
            return len(matched)

    def delete_link(self, link_id: str) -> bool:
        with self._lock:
            link = self.links.pop(link_id, None)
            if link is None:
                return False
            del self.slugs[link.slug]
            return True

    # ---- Accounts ---------------------------------------------------------

    def find_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self.accounts.get(account_id)

    def insert_account(self, account: Account, password_hash: Optional[str] = None) -> Account:
        with self._lock:
            if account.id in self.accounts:
                raise UniqueConstraintViolation("account_id", account.id)
            self.accounts[account.id] = account
            if password_hash is not None:
                self.password_hashes[account.id] = password_hash
            return account

    def update_account(self, account_id: str, patch: Dict[str, Any]) -> Optional[Account]:
        check_patch(patch, ACCOUNT_PATCH_FIELDS)
        with self._lock:
            current = self.accounts.get(account_id)
            if current is None:
                return None
            updated = replace(current, **patch)
            self.accounts[account_id] = updated
            return updated

    # ---- Credentials ------------------------------------------------------

    def find_password_hash(self, account_id: str) -> Optional[str]:
        with self._lock:
            return self.password_hashes.get(account_id)

    def update_password_hash(self, account_id: str, password_hash: str) -> bool:
        with self._lock:
            if account_id not in self.accounts:
                return False
            self.password_hashes[account_id] = password_hash
            return True
