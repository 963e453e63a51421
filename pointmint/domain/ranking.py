"""Leaderboard queries."""

from __future__ import annotations

import logging

from .audit import AuditLog
from .exceptions import InvalidRankingSize, StorageError
from .models import OperationType, RankEntry, StatusCode
from ..storage.base import AccountStore, LedgerRecord

logger = logging.getLogger(__name__)

SYSTEM_USERID = "0"


class RankingService:
    """Read-only top-N balance query; only failures reach the audit log."""

    def __init__(self, accounts: AccountStore, audit: AuditLog) -> None:
        self._accounts = accounts
        self._audit = audit

    async def get_top_n(self, n: int, plugin_name: str | None = None) -> list[RankEntry]:
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            await self._audit.append(
                LedgerRecord(
                    userid=SYSTEM_USERID,
                    operation=OperationType.TOP,
                    status=StatusCode.BAD_REQUEST,
                    plugin_name=plugin_name,
                    comment=f"Invalid leaderboard size {n!r}",
                )
            )
            raise InvalidRankingSize(f"Leaderboard size must be a positive integer, got {n!r}")
        try:
            rows = await self._accounts.top(n)
        except StorageError as exc:
            logger.error("Failed to load top %s accounts: %s", n, exc)
            await self._audit.append(
                LedgerRecord(
                    userid=SYSTEM_USERID,
                    operation=OperationType.TOP,
                    status=StatusCode.INTERNAL_ERROR,
                    plugin_name=plugin_name,
                    comment=f"Storage error: {exc}",
                )
            )
            raise
        return [RankEntry(userid=row.userid, username=row.username, points=row.points) for row in rows]
