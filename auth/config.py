"""
Configuration for the auth module.

Demo users are registered (and given an account) when the app starts, so load
scripts and manual testing work without a signup step. In production, users
would come from the hosted auth backend instead.
"""

from typing import Dict
import os

# username -> plain password (hashed on registration)
SEED_USERS: Dict[str, str] = {
    "minify_demo": os.getenv("DEMO_USER_PASSWORD", "minify_demo"),
}

PBKDF2_ITERATIONS: int = 100_000
