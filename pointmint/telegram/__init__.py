"""Telegram integration helpers."""

from .middlewares import UsernameMirrorMiddleware
from .router import build_router, format_leaderboard, render_points_message

__all__ = [
    "build_router",
    "format_leaderboard",
    "render_points_message",
    "UsernameMirrorMiddleware",
]
