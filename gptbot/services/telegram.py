"""Telegram Bot API outbound calls: replies and the typing indicator."""
import asyncio
import logging

from telegram import Bot
from telegram.constants import ChatAction, ParseMode
from telegram.error import TelegramError

from gptbot.services.errors import report_exception

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
TYPING_INTERVAL = 3.0  # typing actions expire after ~5 seconds


class TransportSendError(Exception):
    """Sending a reply to Telegram failed."""


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split *text* into consecutive chunks of at most *max_length* characters."""
    if len(text) <= max_length:
        return [text]
    return [text[i : i + max_length] for i in range(0, len(text), max_length)]


class TelegramService:
    """Async wrapper around ``telegram.Bot`` for the handler's outbound calls."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_typing(self, chat_id: int) -> None:
        """Send a typing indicator."""
        await self.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)

    async def send_reply(self, chat_id: int, text: str) -> int:
        """Send *text*, splitting it when it exceeds the message size limit.

        A reply that fits in one message is sent with Markdown formatting.
        Longer replies go out as plain-text chunks, since a naive split can
        cut a Markdown entity in half. Returns the number of messages sent.
        """
        try:
            if len(text) <= MAX_MESSAGE_LENGTH:
                await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=ParseMode.MARKDOWN)
                return 1

            chunks = split_message(text)
            logger.debug("Message is too long (%d), splitting into %d messages", len(text), len(chunks))
            for chunk in chunks:
                await self.bot.send_message(chat_id=chat_id, text=chunk)
            return len(chunks)
        except TelegramError as e:
            raise TransportSendError(f"failed to send message: {e}") from e


class TypingIndicator:
    """Keeps the typing indicator alive until stopped.

    Telegram clears a chat action after a few seconds, so a background task
    re-sends it every ``interval`` seconds. Send failures are reported and
    otherwise ignored.
    """

    def __init__(self, telegram: TelegramService, chat_id: int, interval: float = TYPING_INTERVAL):
        self.telegram = telegram
        self.chat_id = chat_id
        self.interval = interval
        self._stopped = asyncio.Event()
        self._task: asyncio.Task | None = None

    async def __aenter__(self) -> "TypingIndicator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        await self._send()
        self._task = asyncio.create_task(self._refresh())

    async def stop(self) -> None:
        """Signal the refresher and wait until it has exited."""
        self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _refresh(self) -> None:
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                await self._send()

    async def _send(self) -> None:
        try:
            await self.telegram.send_typing(self.chat_id)
        except TelegramError as e:
            report_exception(e, "failed to send typing action")
