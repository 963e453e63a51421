"""Validation utilities for PointMint configuration."""

from __future__ import annotations

from .config import PointMintConfig

RESERVED_COMMANDS = {"top"}


def validate_config(config: PointMintConfig) -> list[str]:
    """Return list of validation errors discovered in the configuration."""
    errors: list[str] = []

    if config.initial_points < 0:
        errors.append(f"Initial points cannot be negative, got '{config.initial_points}'.")
    if config.max_update_retries <= 0:
        errors.append(
            f"max_update_retries must be positive, got '{config.max_update_retries}'."
        )
    if not config.plugin_name:
        errors.append("Plugin name must not be empty.")

    storage = config.storage
    if storage.backend not in ("memory", "sqlalchemy"):
        errors.append(f"Unsupported storage backend '{storage.backend}'.")
    elif storage.backend == "sqlalchemy" and not storage.resolve_dsn():
        errors.append("SQLAlchemy backend requires a DSN.")

    chat = config.chat
    if chat.auto_log_username_type not in ("all", "only_command"):
        errors.append(
            f"Unknown username logging mode '{chat.auto_log_username_type}'; "
            "expected 'all' or 'only_command'."
        )
    if chat.check_points_command_set:
        command = chat.check_points_command_name.strip().lstrip("/").lower()
        if not command:
            errors.append("Check points command name must not be empty.")
        elif command in RESERVED_COMMANDS:
            errors.append(f"Check points command '/{command}' is reserved.")
        if "{points}" not in chat.check_points_command.lower():
            errors.append("Check points reply template must contain '{points}'.")
    if chat.leaderboard_size <= 0:
        errors.append(f"Leaderboard size must be positive, got '{chat.leaderboard_size}'.")

    return errors


__all__ = ["validate_config"]
