"""Testing utilities for PointMint."""

from .factory import AccountFactory
from .fixtures import memory_app

__all__ = [
    "AccountFactory",
    "memory_app",
]
