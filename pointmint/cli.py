"""Command line helpers for PointMint operators."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, Sequence, TypeVar

from rich.console import Console
from rich.table import Table

from .app import PointApp
from .config import PointMintConfig
from .domain.exceptions import PointMintError
from .domain.models import RankEntry, StatusCode, TransactionStatus
from .storage.base import LedgerRecord
from .validators import validate_config

T = TypeVar("T")

console = Console()


def run_leaderboard() -> None:
    parser = argparse.ArgumentParser(description="PointMint leaderboard")
    parser.add_argument("--limit", type=int, default=10, help="Number of places to show")
    args = parser.parse_args()

    app = _build_app()
    try:
        entries = asyncio.run(_with_backend(app, lambda: app.ranking.get_top_n(args.limit)))
    except PointMintError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(leaderboard_table(entries))


def run_transaction_status() -> None:
    parser = argparse.ArgumentParser(description="PointMint transaction lookup")
    parser.add_argument("transaction_id", help="Transaction identifier to inspect")
    args = parser.parse_args()

    app = _build_app()
    try:
        status = asyncio.run(
            _with_backend(app, lambda: app.points.get_transaction_status(args.transaction_id))
        )
    except PointMintError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(transaction_table(args.transaction_id, status))


def run_history() -> None:
    parser = argparse.ArgumentParser(description="PointMint ledger history")
    parser.add_argument("userid", help="User whose ledger entries to show")
    parser.add_argument("--limit", type=int, default=20, help="Number of entries to show")
    args = parser.parse_args()

    app = _build_app()
    try:
        entries = asyncio.run(_with_backend(app, lambda: app.audit.history(args.userid, args.limit)))
    except (ValueError, PointMintError) as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(history_table(args.userid, entries))


def leaderboard_table(entries: Sequence[RankEntry]) -> Table:
    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("User ID")
    table.add_column("Username")
    table.add_column("Points", justify="right")
    for place, entry in enumerate(entries, start=1):
        table.add_row(str(place), entry.userid, entry.username or "-", str(entry.points))
    return table


def transaction_table(transaction_id: str, status: TransactionStatus) -> Table:
    table = Table(title=f"Transaction {transaction_id}", show_header=False)
    table.add_row("Rolled back", "yes" if status.is_rollback else "no")
    table.add_row("Rollback transaction", status.rollback_transaction or "-")
    table.add_row(
        "Rollback time", status.rollback_time.isoformat() if status.rollback_time else "-"
    )
    return table


def history_table(userid: str, entries: Sequence[LedgerRecord]) -> Table:
    table = Table(title=f"Ledger of {userid}")
    table.add_column("Time")
    table.add_column("Operation")
    table.add_column("Status", justify="right")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Transaction")
    table.add_column("Comment")
    for entry in entries:
        status = str(int(entry.status))
        if entry.status == StatusCode.INTERNAL_ERROR:
            status = f"[red]{status}[/red]"
        elif entry.is_rollback:
            status = f"[yellow]{status} (rolled back)[/yellow]"
        table.add_row(
            entry.timestamp.isoformat(timespec="seconds") if entry.timestamp else "-",
            entry.operation.value,
            status,
            "-" if entry.old_value is None else str(entry.old_value),
            "-" if entry.new_value is None else str(entry.new_value),
            entry.transaction_id or "-",
            entry.comment or "",
        )
    return table


def _build_app() -> PointApp:
    config = PointMintConfig.from_env()
    issues = validate_config(config)
    if issues:
        console.print("[red]Configuration errors:[/red]")
        for issue in issues:
            console.print(f"- {issue}")
        sys.exit(1)
    return PointApp(config)


async def _with_backend(app: PointApp, operation: Callable[[], Awaitable[T]]) -> T:
    await app.init_backend()
    try:
        return await operation()
    finally:
        await app.close()
