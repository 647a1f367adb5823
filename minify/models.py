"""
Domain records for Minify.

Links and accounts are immutable values; state transitions return new
instances built with `dataclasses.replace`. All timestamps are timezone-aware
UTC datetimes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class LinkStatus(str, Enum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiring-soon"
    EXPIRED = "expired"
    INACTIVE = "inactive"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SOFT_DELETED = "soft-deleted"


@dataclass(frozen=True)
class Link:
    """
    A slug → destination mapping owned by one account.

    `owner_id` is a back-reference only: links are destroyed independently
    of their account row.
    """
    slug: str
    original_url: str
    owner_id: str
    created_at: datetime
    expires_at: datetime
    is_active: bool = True
    id: str = field(default_factory=new_id)

    @classmethod
    def new(
        cls,
        slug: str,
        original_url: str,
        owner_id: str,
        now: Optional[datetime] = None,
        ttl_days: int = 30,
    ) -> "Link":
        created = now or utcnow()
        return cls(
            slug=slug,
            original_url=original_url,
            owner_id=owner_id,
            created_at=created,
            expires_at=created + timedelta(days=ttl_days),
        )


@dataclass(frozen=True)
class Account:
    id: str
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if self.is_deleted != (self.deleted_at is not None):
            raise ValueError("is_deleted must be True exactly when deleted_at is set")
