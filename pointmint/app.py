"""Top level application object for PointMint."""

from __future__ import annotations

from typing import Any

from .config import PointMintConfig
from .domain.audit import AuditLog
from .domain.points import PointService
from .domain.ranking import RankingService
from .storage.base import AccountStore, LedgerStore
from .storage.memory import InMemoryAccountStore, InMemoryLedgerStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage


class PointApp:
    """Central dependency container; construct once at startup."""

    def __init__(
        self,
        config: PointMintConfig,
        *,
        account_store: AccountStore | None = None,
        ledger_store: LedgerStore | None = None,
    ) -> None:
        self.config = config
        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self.account_store, self.ledger_store = self._wire_storage(account_store, ledger_store)

        self.audit = AuditLog(self.ledger_store)
        self.points = PointService(
            self.account_store,
            self.audit,
            initial_points=config.initial_points,
            max_retries=config.max_update_retries,
        )
        self.ranking = RankingService(self.account_store, self.audit)

    def _wire_storage(
        self,
        account_store: AccountStore | None,
        ledger_store: LedgerStore | None,
    ) -> tuple[AccountStore, LedgerStore]:
        if account_store and ledger_store:
            return account_store, ledger_store

        backend = self.config.storage.backend
        if backend == "memory":
            return (
                account_store or InMemoryAccountStore(),
                ledger_store or InMemoryLedgerStore(),
            )
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = storage
            return (
                account_store or storage.account_store(),
                ledger_store or storage.ledger_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "initial_points": self.config.initial_points,
            "max_update_retries": self.config.max_update_retries,
            "username_mirroring": (
                self.config.chat.auto_log_username_type
                if self.config.chat.auto_log_username
                else None
            ),
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
