"""
Manager layer: slug allocation, lifecycle rules, resolution and cascades.
"""

from .cascade import AccountCascade
from .lifecycle import LifecycleEngine
from .link_manager import LinkManager
from .resolution import ResolutionService
from .slug_allocator import SlugAllocator

__all__ = ["AccountCascade", "LifecycleEngine", "LinkManager", "ResolutionService", "SlugAllocator"]
