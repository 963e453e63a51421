"""SQLAlchemy storage backend for PointMint."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import Boolean, DateTime, Integer, String, Text, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.models import OperationType, StatusCode
from .base import AccountRecord, AccountStore, LedgerRecord, LedgerStore, StorageError


class Base(DeclarativeBase):
    pass


class AccountTable(Base):
    __tablename__ = "pointmint_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    userid: Mapped[str] = mapped_column(String(255), unique=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=0, index=True)


class LedgerTable(Base):
    __tablename__ = "pointmint_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    userid: Mapped[str] = mapped_column(String(255), index=True)
    operation: Mapped[str] = mapped_column(String(32))
    status: Mapped[int] = mapped_column(Integer)
    old_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    new_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    plugin_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_rollback: Mapped[bool] = mapped_column(Boolean, default=False)
    rollback_transaction: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def account_store(self) -> "AsyncSQLAlchemyAccountStore":
        return AsyncSQLAlchemyAccountStore(self._session_factory)

    def ledger_store(self) -> "AsyncSQLAlchemyLedgerStore":
        return AsyncSQLAlchemyLedgerStore(self._session_factory)


class AsyncSQLAlchemyAccountStore(AccountStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, userid: str) -> AccountRecord | None:
        try:
            async with self._session_factory() as session:
                stmt = select(AccountTable).where(AccountTable.userid == userid)
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load account {userid}") from exc
        return _to_account(row) if row else None

    async def create(self, record: AccountRecord) -> bool:
        try:
            async with self._session_factory() as session:
                session.add(
                    AccountTable(
                        userid=record.userid,
                        username=record.username,
                        points=record.points,
                    )
                )
                await session.commit()
        except IntegrityError:
            return False
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create account {record.userid}") from exc
        return True

    async def compare_and_set_points(self, userid: str, expected: int, points: int) -> bool:
        try:
            async with self._session_factory() as session:
                stmt = (
                    update(AccountTable)
                    .where(AccountTable.userid == userid, AccountTable.points == expected)
                    .values(points=points)
                )
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update points of {userid}") from exc
        return result.rowcount == 1

    async def set_username(self, userid: str, username: str) -> bool:
        try:
            async with self._session_factory() as session:
                stmt = (
                    update(AccountTable)
                    .where(AccountTable.userid == userid)
                    .values(username=username)
                )
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update username of {userid}") from exc
        return result.rowcount == 1

    async def top(self, limit: int) -> Sequence[AccountRecord]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(AccountTable)
                    .order_by(AccountTable.points.desc(), AccountTable.userid.asc())
                    .limit(limit)
                )
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load leaderboard") from exc
        return [_to_account(row) for row in rows]


class AsyncSQLAlchemyLedgerStore(LedgerStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, record: LedgerRecord) -> None:
        row = LedgerTable(
            transaction_id=record.transaction_id,
            userid=record.userid,
            operation=record.operation.value,
            status=int(record.status),
            old_value=record.old_value,
            new_value=record.new_value,
            plugin_name=record.plugin_name,
            comment=record.comment,
            is_rollback=record.is_rollback,
            rollback_transaction=record.rollback_transaction,
            created_at=record.timestamp or datetime.now(timezone.utc),
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to append ledger entry for {record.userid}") from exc
        record.entry_id = row.id

    async def find(
        self, transaction_id: str, *, userid: str | None = None
    ) -> Sequence[LedgerRecord]:
        stmt = select(LedgerTable).where(LedgerTable.transaction_id == transaction_id)
        if userid is not None:
            stmt = stmt.where(LedgerTable.userid == userid)
        stmt = stmt.order_by(LedgerTable.id.asc())
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to look up transaction {transaction_id}") from exc
        return [_to_ledger(row) for row in rows]

    async def recent_for_user(self, userid: str, limit: int = 20) -> Sequence[LedgerRecord]:
        stmt = (
            select(LedgerTable)
            .where(LedgerTable.userid == userid)
            .order_by(LedgerTable.id.desc())
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load ledger history for {userid}") from exc
        return [_to_ledger(row) for row in rows]

    async def mark_rolled_back(self, entry_id: int, rollback_transaction: str) -> bool:
        stmt = (
            update(LedgerTable)
            .where(LedgerTable.id == entry_id, LedgerTable.is_rollback.is_(False))
            .values(is_rollback=True, rollback_transaction=rollback_transaction)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to flag ledger entry {entry_id}") from exc
        return result.rowcount == 1

    async def clear_rolled_back(self, entry_id: int) -> None:
        stmt = (
            update(LedgerTable)
            .where(LedgerTable.id == entry_id)
            .values(is_rollback=False, rollback_transaction=None)
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to unflag ledger entry {entry_id}") from exc


def _to_account(row: AccountTable) -> AccountRecord:
    return AccountRecord(userid=row.userid, username=row.username, points=row.points)


def _to_ledger(row: LedgerTable) -> LedgerRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return LedgerRecord(
        entry_id=row.id,
        transaction_id=row.transaction_id,
        userid=row.userid,
        operation=OperationType(row.operation),
        status=StatusCode(row.status),
        old_value=row.old_value,
        new_value=row.new_value,
        plugin_name=row.plugin_name,
        comment=row.comment,
        is_rollback=row.is_rollback,
        rollback_transaction=row.rollback_transaction,
        timestamp=created_at,
    )
