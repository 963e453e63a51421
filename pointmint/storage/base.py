"""Storage abstractions used by the PointMint services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence

from ..domain.exceptions import StorageError
from ..domain.models import OperationType, StatusCode

__all__ = [
    "AccountRecord",
    "AccountStore",
    "LedgerRecord",
    "LedgerStore",
    "StorageError",
]


@dataclass(slots=True)
class AccountRecord:
    userid: str
    username: str | None = None
    points: int = 0


@dataclass(slots=True)
class LedgerRecord:
    """One audited operation attempt.

    ``old_value``/``new_value`` are only present when a balance mutation
    happened; ``transaction_id`` is absent for pure reads.
    """

    userid: str
    operation: OperationType
    status: StatusCode
    transaction_id: str | None = None
    old_value: int | None = None
    new_value: int | None = None
    plugin_name: str | None = None
    comment: str | None = None
    is_rollback: bool = False
    rollback_transaction: str | None = None
    timestamp: datetime | None = None
    entry_id: int | None = None

    def __post_init__(self) -> None:
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    @property
    def delta(self) -> int:
        return (self.new_value or 0) - (self.old_value or 0)


class AccountStore(Protocol):
    async def get(self, userid: str) -> AccountRecord | None:
        ...

    async def create(self, record: AccountRecord) -> bool:
        """Insert ``record``; return False when the userid already exists."""
        ...

    async def compare_and_set_points(self, userid: str, expected: int, points: int) -> bool:
        """Write ``points`` only if the stored balance still equals ``expected``."""
        ...

    async def set_username(self, userid: str, username: str) -> bool:
        ...

    async def top(self, limit: int) -> Sequence[AccountRecord]:
        ...


class LedgerStore(Protocol):
    async def append(self, record: LedgerRecord) -> None:
        ...

    async def find(
        self, transaction_id: str, *, userid: str | None = None
    ) -> Sequence[LedgerRecord]:
        ...

    async def recent_for_user(self, userid: str, limit: int = 20) -> Sequence[LedgerRecord]:
        ...

    async def mark_rolled_back(self, entry_id: int, rollback_transaction: str) -> bool:
        """Flag an entry as rolled back unless it already is."""
        ...

    async def clear_rolled_back(self, entry_id: int) -> None:
        ...
