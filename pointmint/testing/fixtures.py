"""Pytest fixtures for PointMint."""

from __future__ import annotations

import pytest

from ..app import PointApp
from ..config import PointMintConfig


@pytest.fixture()
def memory_app() -> PointApp:
    return PointApp(PointMintConfig(bot_token="test", initial_points=100))

