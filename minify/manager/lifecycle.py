"""
LifecycleEngine for Minify.

Pure functions over point-in-time state: nothing here reads or writes the
store, and "now" is always passed in.

Link states, highest priority first:
    INACTIVE       is_active is False (owner soft-deleted or link deactivated)
    EXPIRED        days until expiry <= 0
    EXPIRING_SOON  0 < days until expiry <= 3
    ACTIVE         otherwise

"Days until expiry" is ceil((expires_at - now) / 1 day), so a link with one
second left still counts as one day away.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from ..config import settings
from ..models import Account, AccountStatus, Link, LinkStatus

_SECONDS_PER_DAY = 24 * 60 * 60


class LifecycleEngine:
    def __init__(
        self,
        extend_days: Optional[int] = None,
        expiring_soon_days: Optional[int] = None,
        deletion_grace_days: Optional[int] = None,
    ):
        self.extend_days = extend_days if extend_days is not None else settings.EXTEND_DAYS
        self.expiring_soon_days = (
            expiring_soon_days if expiring_soon_days is not None else settings.EXPIRING_SOON_DAYS
        )
        self.deletion_grace_days = (
            deletion_grace_days if deletion_grace_days is not None else settings.DELETION_GRACE_DAYS
        )

    @staticmethod
    def days_until_expiry(link: Link, now: datetime) -> int:
        remaining = (link.expires_at - now).total_seconds()
        return math.ceil(remaining / _SECONDS_PER_DAY)

    def classify(self, link: Link, now: datetime) -> LinkStatus:
        if not link.is_active:
            return LinkStatus.INACTIVE
        days = self.days_until_expiry(link, now)
        if days <= 0:
            return LinkStatus.EXPIRED
        if days <= self.expiring_soon_days:
            return LinkStatus.EXPIRING_SOON
        return LinkStatus.ACTIVE

    def is_live(self, link: Link, now: datetime) -> bool:
        """True when the link would show up in an owner's listing."""
        return self.classify(link, now) in (LinkStatus.ACTIVE, LinkStatus.EXPIRING_SOON)

    def extend(self, link: Link, now: datetime) -> Link:
        """
        Push expiry forward from the *current* expiry, not from `now`.

        A link that is 10 days overdue is still 3 days overdue after one
        extension. `now` is accepted for signature symmetry with `classify`.
        """
        return replace(
            link,
            expires_at=link.expires_at + timedelta(days=self.extend_days),
            is_active=True,
        )

    def account_status(self, account: Account, now: datetime) -> AccountStatus:
        return AccountStatus.SOFT_DELETED if account.is_deleted else AccountStatus.ACTIVE

    def deletion_deadline(self, account: Account) -> Optional[datetime]:
        """When the external purge may remove the account; display only."""
        if account.deleted_at is None:
            return None
        return account.deleted_at + timedelta(days=self.deletion_grace_days)
