"""Sequential dispatch of inbound updates to the conversation handler."""
import logging
from typing import AsyncIterator

from telegram import Update

from gptbot.logging_config import chat_id_var
from gptbot.services.conversation import ConversationHandler
from gptbot.services.errors import report_exception

logger = logging.getLogger(__name__)


class Dispatcher:
    """Hands updates to the handler one at a time.

    A failed turn is reported and the loop moves on to the next update; the
    user gets no error message.
    """

    def __init__(self, handler: ConversationHandler):
        self.handler = handler

    async def run(self, updates: AsyncIterator[Update]) -> None:
        async for update in updates:
            await self.dispatch(update)

    async def dispatch(self, update: Update) -> bool:
        """Handle a single update. Returns whether a reply was produced."""
        message = update.message
        if message is None or message.text is None:
            # ignore any non-text updates
            logger.debug("Received non-message update %s", update.update_id)
            return False

        token = chat_id_var.set(str(message.chat.id))
        try:
            await self.handler.handle(message)
        except Exception as e:
            report_exception(e, "failed to handle message")
            return False
        finally:
            chat_id_var.reset(token)
        return True
