"""
ResolutionService for Minify.

Turns a slug into a redirect decision. Checks run in a fixed order and stop
at the first failure:

    1. link with that exact slug exists
    2. the owner's account row exists
    3. the owner's account is not soft-deleted

If the owner lookup itself fails, the link is treated as unresolvable and the
store error is logged at ERROR.

Every failure produces the same `NotFound` value so callers cannot tell which
check failed. The reason is only visible in logs; a missing owner row is
logged at WARNING since it means the data is inconsistent, not that the user
did something.

The link's own `is_active` flag and expiry are not re-checked here. Account
cascades flip `is_active` eagerly and expiry is swept by an external job, so
the read path trusts the stored row.
"""

import logging
from dataclasses import dataclass
from typing import Union

from ..errors import StorageError
from ..storage.base import BaseStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redirect:
    url: str


@dataclass(frozen=True)
class NotFound:
    pass


Resolution = Union[Redirect, NotFound]

NOT_FOUND = NotFound()


class ResolutionService:
    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def resolve(self, slug: str) -> Resolution:
        link = self.storage.find_link_by_slug(slug)
        if link is None:
            logger.debug("Resolve %r: no such slug", slug)
            return NOT_FOUND

        try:
            account = self.storage.find_account(link.owner_id)
        except StorageError as exc:
            logger.error("Resolve %r: owner lookup for %r failed: %s", slug, link.owner_id, exc)
            return NOT_FOUND
        if account is None:
            logger.warning(
                "Resolve %r: owner account %r missing for link %r", slug, link.owner_id, link.id
            )
            return NOT_FOUND

        if account.is_deleted:
            logger.debug("Resolve %r: owner account %r is soft-deleted", slug, account.id)
            return NOT_FOUND

        return Redirect(url=link.original_url)
