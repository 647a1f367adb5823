"""
Storage backends for Minify.
"""

from .base import BaseStorage
from .storage import Storage

__all__ = ["BaseStorage", "Storage"]
