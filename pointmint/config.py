"""Configuration models for PointMint."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal


StorageBackend = Literal["memory", "sqlalchemy"]
UsernameLogMode = Literal["all", "only_command"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where accounts and the ledger are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./pointmint.db"
        return None


@dataclass(slots=True)
class ChatConfig:
    """Chat-facing behaviour: the balance command and username mirroring."""

    auto_log_username: bool = True
    auto_log_username_type: UsernameLogMode = "only_command"
    check_points_command_set: bool = True
    check_points_command_name: str = "points"
    check_points_command: str = "You have {points} points."
    leaderboard_size: int = 10


@dataclass(slots=True)
class PointMintConfig:
    """Top-level configuration container."""

    bot_token: str = ""
    initial_points: int = 0
    max_update_retries: int = 5
    plugin_name: str = "pointmint"
    storage: StorageConfig = field(default_factory=StorageConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)

    @classmethod
    def from_env(cls) -> "PointMintConfig":
        """Create config from environment variables prefixed with POINTMINT_."""
        prefix = "POINTMINT_"
        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
        )
        chat = ChatConfig(
            auto_log_username=os.getenv(f"{prefix}AUTO_LOG_USERNAME", "true").lower() in _TRUTHY,
            auto_log_username_type=os.getenv(f"{prefix}AUTO_LOG_USERNAME_TYPE", "only_command"),
            check_points_command_set=os.getenv(f"{prefix}CHECK_POINTS_COMMAND_SET", "true").lower()
            in _TRUTHY,
            check_points_command_name=os.getenv(f"{prefix}CHECK_POINTS_COMMAND_NAME", "points")
            or "points",
            check_points_command=os.getenv(
                f"{prefix}CHECK_POINTS_COMMAND", "You have {points} points."
            ),
            leaderboard_size=int(os.getenv(f"{prefix}LEADERBOARD_SIZE", "10")),
        )
        return cls(
            bot_token=os.getenv(f"{prefix}BOT_TOKEN", ""),
            initial_points=int(os.getenv(f"{prefix}INITIAL_POINTS", "0")),
            max_update_retries=int(os.getenv(f"{prefix}MAX_UPDATE_RETRIES", "5")),
            plugin_name=os.getenv(f"{prefix}PLUGIN_NAME", "pointmint") or "pointmint",
            storage=storage,
            chat=chat,
        )
