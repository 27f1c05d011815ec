#!/usr/bin/env python3
"""
OpenAI Telegram Bot - Entry point.

Loads settings, wires the service context and runs the dispatch loop in
long polling or webhook mode.
"""
import asyncio
import logging
import sys

from pydantic import ValidationError
from telegram.error import TelegramError

from gptbot.bot.dispatcher import Dispatcher
from gptbot.bot.poller import poll_updates
from gptbot.bot.webhook import webhook_updates
from gptbot.config import Settings, get_settings
from gptbot.context import build_context
from gptbot.logging_config import setup_logging
from gptbot.services.conversation import ConversationHandler
from gptbot.services.errors import init_sentry, report_exception

logger = logging.getLogger(__name__)


async def run(settings: Settings) -> None:
    """Run the bot until interrupted."""
    ctx = build_context(settings)
    dispatcher = Dispatcher(ConversationHandler(ctx))

    async with ctx.bot:
        if settings.TELEGRAM_USE_WEBHOOK:
            updates = webhook_updates(ctx.bot, settings)
        else:
            updates = poll_updates(ctx.bot)
        await dispatcher.run(updates)


def main() -> None:
    """Main entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    setup_logging("Bot", settings)
    init_sentry(settings.SENTRY_DSN)

    logger.info("Starting OpenAI Telegram Bot...")
    logger.info(f"Webhook mode: {settings.TELEGRAM_USE_WEBHOOK}")

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Bot shutdown complete")
    except TelegramError as e:
        report_exception(e, "failed to start bot")
        sys.exit(1)


if __name__ == "__main__":
    main()
