"""Conversation handler: one inbound Telegram message to one reply."""
import asyncio
import logging
from dataclasses import dataclass

from telegram import Message as TelegramMessage
from telegram.constants import ChatType

from gptbot.context import AppContext
from gptbot.db import ConversationNotFoundError
from gptbot.models.schemas import Conversation, Message
from gptbot.services.llm import ContextTooLongError
from gptbot.services.telegram import TypingIndicator

logger = logging.getLogger(__name__)

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)


@dataclass(frozen=True)
class ChatIdentity:
    """Whom a turn belongs to: the storage key and a display label."""

    chat_id: int
    title: str


def resolve_identity(message: TelegramMessage) -> ChatIdentity:
    """Group chats are keyed by the group, private chats by the sender."""
    chat = message.chat
    if chat.type in GROUP_CHAT_TYPES:
        return ChatIdentity(chat_id=chat.id, title=chat.title or str(chat.id))

    user = message.from_user
    if user is None:
        return ChatIdentity(chat_id=chat.id, title=chat.username or str(chat.id))
    return ChatIdentity(chat_id=user.id, title=user.username or user.first_name or str(user.id))


class ConversationHandler:
    """Processes turns against the storage backend and the completion client.

    Blocking storage and completion calls run in worker threads so the
    typing indicator keeps refreshing while they are in flight.
    """

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    async def handle(self, message: TelegramMessage) -> str:
        """Answer one inbound message and persist both sides of the exchange.

        Returns the reply text. Any unrecovered error aborts the turn and
        propagates; a storage failure after the reply was sent leaves the
        exchange unpersisted.
        """
        identity = resolve_identity(message)
        logger.debug("Received message from %s (%s)", identity.title, identity.chat_id)

        async with TypingIndicator(self.ctx.telegram, identity.chat_id):
            conversation = await self._load_conversation(identity)

            inbound = Message(chat_id=identity.chat_id, text=message.text or "")
            conversation.messages.append(inbound)

            reply = await self._complete(identity, conversation, inbound)

        await self.ctx.telegram.send_reply(identity.chat_id, reply)

        repository = self.ctx.repository
        await asyncio.to_thread(repository.create_message, inbound)
        await asyncio.to_thread(
            repository.create_message,
            Message(chat_id=identity.chat_id, is_response=True, text=reply),
        )
        return reply

    async def _load_conversation(self, identity: ChatIdentity) -> Conversation:
        """Fetch the conversation, creating an empty one on first contact."""
        repository = self.ctx.repository
        try:
            return await asyncio.to_thread(repository.get_conversation, identity.chat_id)
        except ConversationNotFoundError:
            conversation = Conversation(chat_id=identity.chat_id, title=identity.title)
            await asyncio.to_thread(repository.create_conversation, conversation)
            logger.info("Created conversation for %s (%s)", identity.title, identity.chat_id)
            return conversation

    async def _complete(self, identity: ChatIdentity, conversation: Conversation, inbound: Message) -> str:
        completion = self.ctx.completion
        try:
            return await asyncio.to_thread(
                completion.complete, identity.title, conversation.to_completion_messages()
            )
        except ContextTooLongError:
            # Whole history goes; only the current message is retried
            logger.info(
                "Prompt of %d messages is too long, clearing history of %s",
                len(conversation.messages),
                identity.chat_id,
            )
            await asyncio.to_thread(self.ctx.repository.delete_messages, identity.chat_id)
            return await asyncio.to_thread(
                completion.complete, identity.title, [inbound.to_completion_message()]
            )
