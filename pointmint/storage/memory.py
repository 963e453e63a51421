"""In-memory storage backend for PointMint.

Conditional writes complete without awaiting, so they are atomic with respect
to other coroutines on the same event loop.
"""

from __future__ import annotations

from dataclasses import replace
from itertools import count
from typing import Sequence

from .base import AccountRecord, AccountStore, LedgerRecord, LedgerStore


class InMemoryAccountStore(AccountStore):
    def __init__(self) -> None:
        self._records: dict[str, AccountRecord] = {}

    async def get(self, userid: str) -> AccountRecord | None:
        record = self._records.get(userid)
        return replace(record) if record else None

    async def create(self, record: AccountRecord) -> bool:
        if record.userid in self._records:
            return False
        self._records[record.userid] = replace(record)
        return True

    async def compare_and_set_points(self, userid: str, expected: int, points: int) -> bool:
        record = self._records.get(userid)
        if record is None or record.points != expected:
            return False
        record.points = points
        return True

    async def set_username(self, userid: str, username: str) -> bool:
        record = self._records.get(userid)
        if record is None:
            return False
        record.username = username
        return True

    async def top(self, limit: int) -> Sequence[AccountRecord]:
        ordered = sorted(self._records.values(), key=lambda rec: (-rec.points, rec.userid))
        return [replace(rec) for rec in ordered[:limit]]


class InMemoryLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._entries: list[LedgerRecord] = []
        self._ids = count(1)

    async def append(self, record: LedgerRecord) -> None:
        record.entry_id = next(self._ids)
        self._entries.append(replace(record))

    async def find(
        self, transaction_id: str, *, userid: str | None = None
    ) -> Sequence[LedgerRecord]:
        return [
            replace(entry)
            for entry in self._entries
            if entry.transaction_id == transaction_id
            and (userid is None or entry.userid == userid)
        ]

    async def recent_for_user(self, userid: str, limit: int = 20) -> Sequence[LedgerRecord]:
        filtered = [replace(entry) for entry in reversed(self._entries) if entry.userid == userid]
        return filtered[:limit]

    async def mark_rolled_back(self, entry_id: int, rollback_transaction: str) -> bool:
        entry = self._by_id(entry_id)
        if entry is None or entry.is_rollback:
            return False
        entry.is_rollback = True
        entry.rollback_transaction = rollback_transaction
        return True

    async def clear_rolled_back(self, entry_id: int) -> None:
        entry = self._by_id(entry_id)
        if entry is not None:
            entry.is_rollback = False
            entry.rollback_transaction = None

    def dump(self) -> list[LedgerRecord]:
        return [replace(entry) for entry in self._entries]

    def _by_id(self, entry_id: int) -> LedgerRecord | None:
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        return None
