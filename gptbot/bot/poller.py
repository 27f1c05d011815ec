"""Telegram long polling using getUpdates."""
import asyncio
import logging
from datetime import timedelta
from typing import AsyncIterator

from telegram import Bot, Update
from telegram.constants import UpdateType
from telegram.error import InvalidToken, NetworkError, RetryAfter, TelegramError

logger = logging.getLogger(__name__)

POLL_TIMEOUT = 60
RETRY_DELAY = 5.0


def _retry_after_seconds(error: RetryAfter) -> float:
    delay = error.retry_after
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


async def poll_updates(
    bot: Bot,
    timeout: int = POLL_TIMEOUT,
    retry_delay: float = RETRY_DELAY,
) -> AsyncIterator[Update]:
    """Yield message updates one at a time, forever.

    The offset advances past each update as soon as it is yielded, so an
    update whose handling fails is not fetched again. Flood control waits for
    the delay Telegram asks for; any other polling error except a rejected
    token is logged and the poll is retried.
    """
    logger.info("Starting Telegram bot with long polling...")

    # getUpdates is refused while a webhook is registered
    await bot.delete_webhook()

    offset = 0
    while True:
        try:
            updates = await bot.get_updates(
                offset=offset,
                timeout=timeout,
                allowed_updates=[UpdateType.MESSAGE],
            )
        except InvalidToken:
            raise
        except RetryAfter as e:
            delay = _retry_after_seconds(e)
            logger.warning("getUpdates rate limited, retrying in %.0fs", delay)
            await asyncio.sleep(delay)
            continue
        except NetworkError as e:
            logger.warning("getUpdates failed, retrying in %.0fs: %s", retry_delay, e)
            await asyncio.sleep(retry_delay)
            continue
        except TelegramError as e:
            logger.error("getUpdates error, retrying in %.0fs: %s", retry_delay, e)
            await asyncio.sleep(retry_delay)
            continue

        for update in updates:
            offset = update.update_id + 1
            yield update
