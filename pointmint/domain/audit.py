"""Append-only audit trail of every balance operation attempt."""

from __future__ import annotations

import logging
from typing import Sequence

from .exceptions import StorageError
from .models import StatusCode
from ..storage.base import LedgerRecord, LedgerStore

logger = logging.getLogger(__name__)


class AuditLog:
    """Write and query ledger entries.

    Appends happen after the balance write they describe. A failed append is
    reported to operators through the log and never changes the outcome the
    caller already earned.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    async def append(self, record: LedgerRecord) -> bool:
        try:
            await self._store.append(record)
        except StorageError:
            logger.error(
                "Failed to append %s ledger entry for %s (transaction=%s, status=%s).",
                record.operation.value,
                record.userid,
                record.transaction_id,
                int(record.status),
                exc_info=True,
            )
            return False
        return True

    async def find(
        self, transaction_id: str, *, userid: str | None = None
    ) -> Sequence[LedgerRecord]:
        return await self._store.find(transaction_id, userid=userid)

    async def find_mutation(
        self, transaction_id: str, *, userid: str | None = None
    ) -> LedgerRecord | None:
        """Return the successful balance mutation recorded under ``transaction_id``."""
        for entry in await self._store.find(transaction_id, userid=userid):
            if (
                entry.status == StatusCode.OK
                and entry.operation.is_mutation
                and entry.old_value is not None
                and entry.new_value is not None
            ):
                return entry
        return None

    async def claim_rollback(self, entry: LedgerRecord, rollback_transaction: str) -> bool:
        if entry.entry_id is None:
            raise ValueError("Ledger entry has not been persisted")
        claimed = await self._store.mark_rolled_back(entry.entry_id, rollback_transaction)
        if claimed:
            entry.is_rollback = True
            entry.rollback_transaction = rollback_transaction
        return claimed

    async def release_rollback(self, entry: LedgerRecord) -> None:
        if entry.entry_id is None:
            raise ValueError("Ledger entry has not been persisted")
        await self._store.clear_rolled_back(entry.entry_id)
        entry.is_rollback = False
        entry.rollback_transaction = None

    async def history(self, userid: str, limit: int = 20) -> Sequence[LedgerRecord]:
        if limit <= 0:
            raise ValueError("Limit must be positive")
        return await self._store.recent_for_user(userid, limit)
