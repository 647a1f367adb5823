"""
Utility functions for the auth module.
"""

import hashlib
import hmac
import os
from typing import Optional

from .config import PBKDF2_ITERATIONS


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """
    Return "salt$digest" (both hex) for the given password using PBKDF2-SHA256.
    """
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    salt_hex, _, expected = stored.partition("$")
    candidate = hash_password(password, bytes.fromhex(salt_hex)).partition("$")[2]
    return hmac.compare_digest(candidate, expected)
