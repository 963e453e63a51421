"""Example bot: a points balance command, a leaderboard and a refundable shop."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from pointmint import PointApp, PointMintConfig, StatusCode
from pointmint.telegram import build_router

PLUGIN_NAME = "shop"
ITEM_PRICE = 30


def build_shop_router(app: PointApp) -> Router:
    router = Router()
    points = app.points

    @router.message(Command("buy"))
    async def handle_buy(message: Message) -> None:
        user = message.from_user
        if not user:
            return
        transaction_id = points.generate_transaction_id()
        result = await points.reduce(str(user.id), transaction_id, ITEM_PRICE, PLUGIN_NAME)
        if result.code is StatusCode.INSUFFICIENT_BALANCE:
            await message.answer(f"You need {ITEM_PRICE} points for this item.")
            return
        if not result.ok:
            await message.answer(f"Purchase failed: {result.message}")
            return
        await message.answer(f"Bought! Keep this receipt for refunds: {transaction_id}")

    @router.message(Command("refund"))
    async def handle_refund(message: Message, command: CommandObject) -> None:
        user = message.from_user
        if not user:
            return
        if not command.args:
            await message.answer("Usage: /refund <receipt>")
            return
        result = await points.rollback(str(user.id), command.args.strip(), PLUGIN_NAME)
        await message.answer("Refunded." if result.ok else f"Refund failed: {result.message}")

    return router


async def run_bot() -> None:
    logging.basicConfig(level=logging.INFO)
    app = PointApp(PointMintConfig.from_env())
    await app.init_backend()

    bot = Bot(app.config.bot_token)
    dp = Dispatcher()
    dp.include_router(build_router(app))
    dp.include_router(build_shop_router(app))
    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


if __name__ == "__main__":
    asyncio.run(run_bot())
