"""
Core authentication logic.

`UserRegistry` reads and writes password hashes through the app's storage, so
credentials live next to the account row and outlive the process.
`authenticate` raises the 401 the API returns directly.
"""

from typing import Optional

from fastapi import HTTPException, status

from minify.errors import UniqueConstraintViolation
from minify.models import Account
from minify.storage.base import BaseStorage

from .utils import hash_password, verify_password


class UserRegistry:
    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def __contains__(self, username: str) -> bool:
        return self.storage.find_password_hash(username) is not None

    def register(self, username: str, password: str) -> str:
        """
        Create the user's account row together with their password hash.

        Raises:
            ValueError: If the username is already registered.
            StorageError: If the store could not be written; nothing is kept.
        """
        hashed = hash_password(password)
        try:
            self.storage.insert_account(Account(id=username), password_hash=hashed)
        except UniqueConstraintViolation as exc:
            raise ValueError("Username already registered") from exc
        return username

    def _verified(self, username: str, password: str) -> Optional[str]:
        stored = self.storage.find_password_hash(username)
        if stored is None or not verify_password(password, stored):
            return None
        return stored

    def authenticate(self, username: str, password: str) -> str:
        """
        Validate a username/password pair.

        Returns:
            str: The authenticated username (the caller's account id).

        Raises:
            HTTPException: 401 if authentication fails.
        """
        if self._verified(username, password) is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
                headers={"WWW-Authenticate": "Basic"},
            )
        return username

    def change_password(self, username: str, current_password: str, new_password: str) -> None:
        """
        Replace a user's password after re-checking the current one.

        Raises:
            ValueError: If the current password is wrong or the new one is empty.
        """
        if self._verified(username, current_password) is None:
            raise ValueError("Current password is incorrect")
        if not new_password:
            raise ValueError("New password is required")
        if not self.storage.update_password_hash(username, hash_password(new_password)):
            raise ValueError("Account not found")
