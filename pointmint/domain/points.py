"""Balance reads, audited mutations and rollback."""

from __future__ import annotations

import logging
from typing import Callable

from .audit import AuditLog
from .exceptions import (
    ConcurrentUpdateError,
    InvalidTransactionId,
    StorageError,
    TransactionNotFound,
)
from .models import OperationResult, OperationType, StatusCode, TransactionStatus
from .transaction import TransactionIdGenerator
from ..storage.base import AccountRecord, AccountStore, LedgerRecord

logger = logging.getLogger(__name__)

MSG_INVALID_TRANSACTION = "Invalid transaction id"
MSG_NEGATIVE_POINTS = "Points cannot be negative"
MSG_NOT_INTEGER = "Points must be an integer"
MSG_USER_NOT_FOUND = "User not found"
MSG_INSUFFICIENT = "Insufficient points"
MSG_UNKNOWN_TRANSACTION = "Transaction not found"
MSG_ALREADY_ROLLED_BACK = "Transaction already rolled back"


class _Rejected(Exception):
    """Internal signal raised by balance computations to abort a write."""

    def __init__(self, code: StatusCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class PointService:
    """Read and mutate per-user point balances, auditing every attempt.

    Balance writes use optimistic concurrency: the new value is written only
    if the stored balance still equals the one it was computed from, and the
    computation is retried otherwise.
    """

    def __init__(
        self,
        accounts: AccountStore,
        audit: AuditLog,
        *,
        initial_points: int = 0,
        max_retries: int = 5,
    ) -> None:
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")
        self._accounts = accounts
        self._audit = audit
        self._initial_points = initial_points
        self._max_retries = max_retries

    generate_transaction_id = staticmethod(TransactionIdGenerator.generate)
    check_transaction_id = staticmethod(TransactionIdGenerator.validate)

    async def get(self, userid: str, plugin_name: str | None = None) -> int | None:
        """Return the balance of ``userid`` or None when the account does not exist."""
        record = await self._read(userid, plugin_name)
        return record.points if record else None

    async def get_username(self, userid: str, plugin_name: str | None = None) -> str | None:
        record = await self._read(userid, plugin_name)
        return record.username if record else None

    async def set(
        self, userid: str, transaction_id: str, points: int, plugin_name: str | None = None
    ) -> OperationResult:
        """Overwrite the balance with an absolute value, creating the account if needed."""
        op = OperationType.SET
        if not self.check_transaction_id(transaction_id):
            return await self._reject(userid, op, StatusCode.BAD_REQUEST, MSG_INVALID_TRANSACTION, plugin_name)
        rejection = self._check_amount(points)
        if rejection:
            return await self._reject(
                userid, op, StatusCode.BAD_REQUEST, rejection, plugin_name, transaction_id
            )
        return await self._mutate(userid, op, transaction_id, lambda current: points, plugin_name)

    async def add(
        self, userid: str, transaction_id: str, points: int, plugin_name: str | None = None
    ) -> OperationResult:
        op = OperationType.ADD
        if not self.check_transaction_id(transaction_id):
            return await self._reject(userid, op, StatusCode.BAD_REQUEST, MSG_INVALID_TRANSACTION, plugin_name)
        rejection = self._check_amount(points)
        if rejection:
            return await self._reject(
                userid, op, StatusCode.BAD_REQUEST, rejection, plugin_name, transaction_id
            )
        if points == 0:
            return await self._noop(userid, op, plugin_name, transaction_id)

        def compute(current: int | None) -> int:
            if current is None:
                return self._initial_points + points
            return current + points

        return await self._mutate(userid, op, transaction_id, compute, plugin_name)

    async def reduce(
        self, userid: str, transaction_id: str, points: int, plugin_name: str | None = None
    ) -> OperationResult:
        op = OperationType.REDUCE
        rejection = self._check_amount(points)
        if rejection:
            return await self._reject(
                userid, op, StatusCode.BAD_REQUEST, rejection, plugin_name, transaction_id
            )
        if points == 0:
            return await self._noop(userid, op, plugin_name, transaction_id)
        if not self.check_transaction_id(transaction_id):
            return await self._reject(userid, op, StatusCode.BAD_REQUEST, MSG_INVALID_TRANSACTION, plugin_name)

        def compute(current: int | None) -> int:
            if current is None:
                raise _Rejected(StatusCode.BAD_REQUEST, MSG_USER_NOT_FOUND)
            if current < points:
                raise _Rejected(StatusCode.INSUFFICIENT_BALANCE, MSG_INSUFFICIENT)
            return current - points

        return await self._mutate(userid, op, transaction_id, compute, plugin_name)

    async def update_username(
        self, userid: str, username: str, plugin_name: str | None = None
    ) -> OperationResult:
        op = OperationType.UPDATE_USERNAME
        try:
            updated = await self._accounts.set_username(userid, username)
        except StorageError as exc:
            return await self._fail(userid, op, exc, plugin_name)
        comment = None if updated else "No account to update"
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=StatusCode.OK,
                plugin_name=plugin_name,
                comment=comment,
            )
        )
        return OperationResult(StatusCode.OK, comment or "Username updated")

    async def sync_username(
        self, userid: str, username: str | None, plugin_name: str | None = None
    ) -> OperationResult | None:
        """Mirror a display name onto an existing account when it changed."""
        if not username:
            return None
        record = await self._accounts.get(userid)
        if record is None or record.username == username:
            return None
        return await self.update_username(userid, username, plugin_name)

    async def rollback(
        self, userid: str, transaction_id: str, plugin_name: str | None = None
    ) -> OperationResult:
        """Reverse a recorded mutation by applying its inverse delta to the current balance.

        The original entry is claimed before the balance moves, so only one of
        several concurrent rollbacks of the same transaction can proceed. The
        claim is released if the balance write does not go through.
        """
        op = OperationType.ROLLBACK
        if not self.check_transaction_id(transaction_id):
            return await self._reject(userid, op, StatusCode.BAD_REQUEST, MSG_INVALID_TRANSACTION, plugin_name)

        rollback_id = self.generate_transaction_id()
        try:
            original = await self._audit.find_mutation(transaction_id, userid=userid)
            if original is None:
                raise _Rejected(StatusCode.BAD_REQUEST, MSG_UNKNOWN_TRANSACTION)
            if original.is_rollback or not await self._audit.claim_rollback(original, rollback_id):
                raise _Rejected(StatusCode.BAD_REQUEST, MSG_ALREADY_ROLLED_BACK)

            delta = original.delta

            def compute(current: int | None) -> int:
                if current is None:
                    raise _Rejected(StatusCode.BAD_REQUEST, MSG_USER_NOT_FOUND)
                return current - delta

            try:
                await self._write_balance(userid, compute)
            except (_Rejected, StorageError):
                await self._release_claim(original)
                raise
        except _Rejected as rejection:
            return await self._reject(
                userid,
                op,
                rejection.code,
                rejection.message,
                plugin_name,
                comment=f"{rejection.message}: {transaction_id}",
            )
        except StorageError as exc:
            return await self._fail(userid, op, exc, plugin_name)

        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=StatusCode.OK,
                transaction_id=rollback_id,
                old_value=original.new_value,
                new_value=original.old_value,
                plugin_name=plugin_name,
                comment=f"Rollback of {transaction_id}",
                rollback_transaction=transaction_id,
            )
        )
        logger.info("Rolled back %s for %s as %s.", transaction_id, userid, rollback_id)
        return OperationResult(StatusCode.OK, "Rolled back")

    async def get_transaction_status(self, transaction_id: str) -> TransactionStatus:
        if not self.check_transaction_id(transaction_id):
            raise InvalidTransactionId(f"Invalid transaction id {transaction_id!r}")
        try:
            entry = await self._audit.find_mutation(transaction_id)
            if entry is None:
                if not await self._audit.find(transaction_id):
                    raise TransactionNotFound(f"Transaction {transaction_id} not found")
                return TransactionStatus(is_rollback=False)
            rollback_time = None
            if entry.is_rollback and entry.rollback_transaction:
                act = await self._audit.find_mutation(entry.rollback_transaction)
                rollback_time = act.timestamp if act else None
        except StorageError:
            logger.error("Failed to look up transaction %s.", transaction_id, exc_info=True)
            raise
        return TransactionStatus(
            is_rollback=entry.is_rollback,
            rollback_transaction=entry.rollback_transaction,
            rollback_time=rollback_time,
        )

    async def _read(self, userid: str, plugin_name: str | None) -> AccountRecord | None:
        try:
            record = await self._accounts.get(userid)
        except StorageError as exc:
            logger.error("Failed to read account %s: %s", userid, exc)
            await self._audit.append(
                LedgerRecord(
                    userid=userid,
                    operation=OperationType.GET,
                    status=StatusCode.INTERNAL_ERROR,
                    plugin_name=plugin_name,
                    comment=f"Storage error: {exc}",
                )
            )
            raise
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=OperationType.GET,
                status=StatusCode.OK,
                plugin_name=plugin_name,
            )
        )
        return record

    async def _mutate(
        self,
        userid: str,
        op: OperationType,
        transaction_id: str,
        compute: Callable[[int | None], int],
        plugin_name: str | None,
    ) -> OperationResult:
        try:
            old_value, new_value = await self._write_balance(userid, compute)
        except _Rejected as rejection:
            return await self._reject(
                userid, op, rejection.code, rejection.message, plugin_name, transaction_id
            )
        except StorageError as exc:
            return await self._fail(userid, op, exc, plugin_name, transaction_id)
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=StatusCode.OK,
                transaction_id=transaction_id,
                old_value=old_value,
                new_value=new_value,
                plugin_name=plugin_name,
            )
        )
        return OperationResult(StatusCode.OK, f"{op.value} succeeded")

    async def _write_balance(
        self, userid: str, compute: Callable[[int | None], int]
    ) -> tuple[int, int]:
        """Compare-and-set loop; returns the (old, new) balance that was written."""
        for attempt in range(1, self._max_retries + 1):
            record = await self._accounts.get(userid)
            current = record.points if record else None
            new_value = compute(current)
            if new_value < 0:
                raise _Rejected(StatusCode.INSUFFICIENT_BALANCE, MSG_INSUFFICIENT)
            if record is None:
                if await self._accounts.create(AccountRecord(userid=userid, points=new_value)):
                    return 0, new_value
            elif await self._accounts.compare_and_set_points(userid, record.points, new_value):
                return record.points, new_value
            logger.debug(
                "Balance of %s changed during update (attempt %s/%s).",
                userid,
                attempt,
                self._max_retries,
            )
        raise ConcurrentUpdateError(userid, self._max_retries)

    async def _release_claim(self, entry: LedgerRecord) -> None:
        try:
            await self._audit.release_rollback(entry)
        except StorageError:
            logger.error(
                "Failed to release rollback claim on %s; entry stays flagged.",
                entry.transaction_id,
                exc_info=True,
            )

    def _check_amount(self, points: int) -> str | None:
        if isinstance(points, bool) or not isinstance(points, int):
            return MSG_NOT_INTEGER
        if points < 0:
            return MSG_NEGATIVE_POINTS
        return None

    async def _noop(
        self, userid: str, op: OperationType, plugin_name: str | None, transaction_id: str
    ) -> OperationResult:
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=StatusCode.NO_CONTENT,
                transaction_id=_valid_or_none(transaction_id),
                plugin_name=plugin_name,
                comment="Zero amount",
            )
        )
        return OperationResult(StatusCode.NO_CONTENT, "Nothing to change")

    async def _reject(
        self,
        userid: str,
        op: OperationType,
        code: StatusCode,
        message: str,
        plugin_name: str | None,
        transaction_id: str | None = None,
        *,
        comment: str | None = None,
    ) -> OperationResult:
        logger.info("Rejected %s for %s: %s", op.value, userid, comment or message)
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=code,
                transaction_id=_valid_or_none(transaction_id),
                plugin_name=plugin_name,
                comment=comment or message,
            )
        )
        return OperationResult(code, message)

    async def _fail(
        self,
        userid: str,
        op: OperationType,
        exc: StorageError,
        plugin_name: str | None,
        transaction_id: str | None = None,
    ) -> OperationResult:
        logger.error("%s for %s failed: %s", op.value, userid, exc, exc_info=exc)
        await self._audit.append(
            LedgerRecord(
                userid=userid,
                operation=op,
                status=StatusCode.INTERNAL_ERROR,
                transaction_id=_valid_or_none(transaction_id),
                plugin_name=plugin_name,
                comment=f"Storage error: {exc}",
            )
        )
        return OperationResult(StatusCode.INTERNAL_ERROR, f"{op.value} failed")


def _valid_or_none(transaction_id: str | None) -> str | None:
    if transaction_id and TransactionIdGenerator.validate(transaction_id):
        return transaction_id
    return None
