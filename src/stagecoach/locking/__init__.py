"""
Resource locking package.
"""

from .coordinator import LockedExecutionCoordinator
from .registry import LockEntry, LockRegistry, get_registry, reset_registry

__all__ = [
    "LockEntry",
    "LockRegistry",
    "LockedExecutionCoordinator",
    "get_registry",
    "reset_registry",
]
