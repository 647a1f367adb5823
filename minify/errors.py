"""
Error taxonomy for Minify.

The core raises these and never retries them; callers (the API layer)
decide how each kind is reported. Validation errors are also `ValueError`s
so plain `except ValueError` handlers keep working.

Hierarchy:
    MinifyError
    ├── ValidationError (ValueError)
    │   ├── InvalidFormat
    │   ├── ReservedSlug
    │   └── InvalidURL
    ├── ConflictError
    │   └── SlugTaken
    ├── ExhaustionError
    │   └── AllocationExhausted
    ├── NotFoundError
    │   ├── LinkNotFound
    │   └── AccountNotFound
    ├── PermissionDenied
    │   ├── NotLinkOwner
    │   └── AccountInactive
    └── PartialCascadeError

    StorageError
    └── UniqueConstraintViolation
"""

from typing import Optional


class MinifyError(Exception):
    """Base class for every error raised by the Minify core."""


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

class ValidationError(MinifyError, ValueError):
    """Malformed input. Local to the caller; retrying the same input is pointless."""


class InvalidFormat(ValidationError):
    """Custom slug violates the slug policy."""


class ReservedSlug(ValidationError):
    """Custom slug is part of the reserved namespace."""

    def __init__(self, slug: str):
        super().__init__("This slug is reserved and cannot be used")
        self.slug = slug


class InvalidURL(ValidationError):
    """Destination URL is not an absolute http(s) URL."""


# ---------------------------------------------------------------------
# Conflicts / exhaustion
# ---------------------------------------------------------------------

class ConflictError(MinifyError):
    """A unique constraint rejected the write."""


class SlugTaken(ConflictError):
    def __init__(self, slug: str):
        super().__init__("This slug is already taken")
        self.slug = slug


class ExhaustionError(MinifyError):
    """A bounded generation loop ran out of attempts."""


class AllocationExhausted(ExhaustionError):
    def __init__(self, attempts: int):
        super().__init__(f"Failed to generate unique slug after {attempts} attempts")
        self.attempts = attempts


# ---------------------------------------------------------------------
# Lookup / permission
# ---------------------------------------------------------------------

class NotFoundError(MinifyError):
    """Entity does not exist (or is not visible to the caller)."""


class LinkNotFound(NotFoundError):
    pass


class AccountNotFound(NotFoundError):
    pass


class PermissionDenied(MinifyError):
    """Caller is authenticated but may not perform the operation."""


class NotLinkOwner(PermissionDenied):
    pass


class AccountInactive(PermissionDenied):
    """The caller's account is soft-deleted."""


# ---------------------------------------------------------------------
# Cascades
# ---------------------------------------------------------------------

class PartialCascadeError(MinifyError):
    """
    The account write of a cascade was applied but the link fan-out failed.

    The account change is NOT rolled back. The fan-out is an idempotent bulk
    update, so the caller may simply re-run it.

    Attributes:
        account_id: Account whose state was already changed.
        stage: Name of the step that failed ("deactivate_links" / "reactivate_links").
        cause: The underlying exception.
    """

    def __init__(self, account_id: str, stage: str, cause: Optional[BaseException] = None):
        super().__init__(f"Cascade for account {account_id!r} failed at stage {stage!r}")
        self.account_id = account_id
        self.stage = stage
        self.cause = cause


# ---------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------

class StorageError(Exception):
    """Backend failure (connection, query, ...)."""


class UniqueConstraintViolation(StorageError):
    """Insert rejected by a uniqueness constraint (e.g. links.slug)."""

    def __init__(self, field: str, value: str):
        super().__init__(f"Duplicate value for {field}: {value!r}")
        self.field = field
        self.value = value
