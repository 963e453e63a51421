"""Factory helpers to wire PointMint services into aiogram."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ..app import PointApp
from ..domain.exceptions import InvalidRankingSize, StorageError
from ..domain.models import RankEntry
from .middlewares import UsernameMirrorMiddleware, display_name

logger = logging.getLogger(__name__)

_POINTS_PLACEHOLDER = re.compile(r"\{points\}", re.IGNORECASE)


def build_router(app: PointApp) -> Router:
    router = Router()
    chat = app.config.chat
    points = app.points
    plugin_name = app.config.plugin_name

    if chat.auto_log_username and chat.auto_log_username_type == "all":
        router.message.outer_middleware(UsernameMirrorMiddleware(points, plugin_name=plugin_name))

    if chat.check_points_command_set:

        @router.message(Command(chat.check_points_command_name))
        async def handle_points(message: Message) -> None:
            user = message.from_user
            if not user:
                return
            userid = str(user.id)
            try:
                balance = await points.get(userid, plugin_name)
            except StorageError:
                await message.answer("Points are unavailable right now, try again later.")
                return
            if balance is None:
                await message.answer("You have no points yet, go earn some!")
                return
            await message.answer(render_points_message(chat.check_points_command, balance))

            if chat.auto_log_username and chat.auto_log_username_type == "only_command":
                try:
                    await points.sync_username(userid, display_name(message), plugin_name)
                except StorageError:
                    logger.warning("Could not mirror username of %s.", userid, exc_info=True)

    @router.message(Command("top"))
    async def handle_top(message: Message, command: CommandObject) -> None:
        size = parse_leaderboard_size(command.args, chat.leaderboard_size)
        if size is None:
            await message.answer("Usage: /top [number of places]")
            return
        try:
            entries = await app.ranking.get_top_n(size, plugin_name)
        except InvalidRankingSize:
            await message.answer("Usage: /top [number of places]")
            return
        except StorageError:
            await message.answer("Leaderboard is unavailable right now, try again later.")
            return
        await message.answer(format_leaderboard(entries))

    return router


def render_points_message(template: str, points: int) -> str:
    return _POINTS_PLACEHOLDER.sub(str(points), template)


def parse_leaderboard_size(args: str | None, default: int) -> int | None:
    if not args or not args.strip():
        return default
    try:
        return int(args.split()[0])
    except ValueError:
        return None


def format_leaderboard(entries: Sequence[RankEntry]) -> str:
    if not entries:
        return "Nobody has points yet."
    lines = ["🏆 Leaderboard:"]
    for place, entry in enumerate(entries, start=1):
        lines.append(f"{place}. {entry.username or entry.userid}: {entry.points}")
    return "\n".join(lines)
