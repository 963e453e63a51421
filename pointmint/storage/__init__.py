"""Storage backends for PointMint."""

from .base import AccountRecord, AccountStore, LedgerRecord, LedgerStore, StorageError
from .memory import InMemoryAccountStore, InMemoryLedgerStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AccountRecord",
    "AccountStore",
    "LedgerRecord",
    "LedgerStore",
    "StorageError",
    "InMemoryAccountStore",
    "InMemoryLedgerStore",
    "AsyncSQLAlchemyStorage",
]
