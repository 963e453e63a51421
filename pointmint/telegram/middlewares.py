"""aiogram middlewares for PointMint bots."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import Message

from ..domain.exceptions import StorageError
from ..domain.points import PointService

logger = logging.getLogger(__name__)


def display_name(message: Message) -> str | None:
    user = message.from_user
    if not user:
        return None
    return user.username or user.full_name or None


class UsernameMirrorMiddleware(BaseMiddleware):
    """Keep stored usernames in step with whatever name the sender uses now."""

    def __init__(self, points: PointService, *, plugin_name: str | None = None) -> None:
        self._points = points
        self._plugin_name = plugin_name

    async def __call__(
        self,
        handler: Callable[[Message, dict[str, Any]], Awaitable[Any]],
        event: Message,
        data: dict[str, Any],
    ) -> Any:
        user = event.from_user
        if user:
            try:
                await self._points.sync_username(
                    str(user.id), display_name(event), self._plugin_name
                )
            except StorageError:
                logger.warning("Could not mirror username of %s.", user.id, exc_info=True)
        return await handler(event, data)
