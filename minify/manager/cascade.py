"""
AccountCascade for Minify.

Propagates account soft-delete / reactivation to every link the account owns.

Each operation is a two-step saga with no surrounding transaction:

    soft_delete:  account.is_deleted=True, deleted_at=now  ->  links.is_active=False
    reactivate:   account.is_deleted=False, deleted_at=None ->  links.is_active=True

The account write goes first. Resolution checks the account before anything
else, so once step one lands every owned slug already resolves to NotFound;
the link flag is the secondary guard used by listings.

If step two fails, step one is NOT undone: `PartialCascadeError` is raised and
the caller may re-run the operation. Calling `soft_delete` again on a deleted
account keeps the original `deleted_at` and just re-applies the idempotent
fan-out.

Reactivation only restores `is_active`. Links that expired meanwhile stay
expired until extended individually.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..errors import AccountNotFound, PartialCascadeError, StorageError
from ..models import Account, utcnow
from ..storage.base import BaseStorage
from .lifecycle import LifecycleEngine

logger = logging.getLogger(__name__)

STAGE_DEACTIVATE_LINKS = "deactivate_links"
STAGE_REACTIVATE_LINKS = "reactivate_links"


@dataclass(frozen=True)
class DeletionRecord:
    account_id: str
    deleted_at: datetime
    deletion_deadline: datetime
    links_deactivated: int
    already_deleted: bool = False


@dataclass(frozen=True)
class ReactivationRecord:
    account_id: str
    already_active: bool
    links_reactivated: int = 0
    reactivated_at: Optional[datetime] = None


class AccountCascade:
    def __init__(
        self,
        storage: BaseStorage,
        lifecycle: Optional[LifecycleEngine] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.lifecycle = lifecycle or LifecycleEngine()
        self.clock = clock

    def _get_account(self, account_id: str) -> Account:
        account = self.storage.find_account(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id!r} not found")
        return account

    def soft_delete(self, account_id: str) -> DeletionRecord:
        """
        Soft-delete an account, then deactivate all of its links.

        Raises:
            AccountNotFound: no such account.
            StorageError: the account write itself failed (nothing applied).
            PartialCascadeError: account deleted, link fan-out failed.
        """
        account = self._get_account(account_id)
        already_deleted = account.is_deleted

        if not already_deleted:
            now = self.clock()
            updated = self.storage.update_account(account_id, {"is_deleted": True, "deleted_at": now})
            if updated is None:
                raise AccountNotFound(f"Account {account_id!r} not found")
            account = updated
            logger.info("Account %r soft-deleted at %s", account_id, now.isoformat())
        else:
            logger.info("Account %r already soft-deleted; re-applying link fan-out", account_id)

        try:
            count = self.storage.update_links_by_owner(account_id, {"is_active": False})
        except StorageError as exc:
            logger.error("Account %r deleted but link deactivation failed: %s", account_id, exc)
            raise PartialCascadeError(account_id, STAGE_DEACTIVATE_LINKS, exc) from exc

        logger.info("Deactivated %d link(s) for account %r", count, account_id)
        return DeletionRecord(
            account_id=account_id,
            deleted_at=account.deleted_at,
            deletion_deadline=self.lifecycle.deletion_deadline(account),
            links_deactivated=count,
            already_deleted=already_deleted,
        )

    def reactivate(self, account_id: str) -> ReactivationRecord:
        """
        Reactivate a soft-deleted account, then reactivate all of its links.

        An account that is not deleted is reported as already active and
        nothing is written.

        Raises:
            AccountNotFound: no such account.
            StorageError: the account write itself failed (nothing applied).
            PartialCascadeError: account restored, link fan-out failed.
        """
        account = self._get_account(account_id)
        if not account.is_deleted:
            logger.info("Account %r is already active", account_id)
            return ReactivationRecord(account_id=account_id, already_active=True)

        now = self.clock()
        if self.storage.update_account(account_id, {"is_deleted": False, "deleted_at": None}) is None:
            raise AccountNotFound(f"Account {account_id!r} not found")
        logger.info("Account %r reactivated", account_id)

        try:
            count = self.storage.update_links_by_owner(account_id, {"is_active": True})
        except StorageError as exc:
            logger.error("Account %r reactivated but link reactivation failed: %s", account_id, exc)
            raise PartialCascadeError(account_id, STAGE_REACTIVATE_LINKS, exc) from exc

        logger.info("Reactivated %d link(s) for account %r", count, account_id)
        return ReactivationRecord(
            account_id=account_id,
            already_active=False,
            links_reactivated=count,
            reactivated_at=now,
        )
