"""Redis-backed conversation repository."""
import logging
import uuid

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from gptbot.db.repository import ConversationNotFoundError, StorageError, sort_messages
from gptbot.models.schemas import Conversation, Message

logger = logging.getLogger(__name__)

CONVERSATION_KEY = "conversation:{chat_id}"
MESSAGE_KEY = "messages:{chat_id}:{message_id}"
MESSAGE_PATTERN = "messages:{chat_id}:*"


class RedisConversationRepository:
    """Stores each conversation and each message under its own key.

    Conversations live at ``conversation:<chat_id>``; messages at
    ``messages:<chat_id>:<uuid4>``, listed by scanning the chat's prefix.
    """

    def __init__(self, client: Redis):
        self.client = client

    def get_conversation(self, chat_id: int) -> Conversation:
        try:
            raw = self.client.get(CONVERSATION_KEY.format(chat_id=chat_id))
        except RedisError as e:
            raise StorageError(f"failed to get conversation {chat_id}: {e}") from e

        if raw is None:
            raise ConversationNotFoundError(chat_id)

        try:
            conversation = Conversation.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"failed to decode conversation {chat_id}: {e}") from e

        conversation.messages = self.get_conversation_messages(chat_id)
        return conversation

    def get_conversation_messages(self, chat_id: int) -> list[Message]:
        """Return all messages of a chat in ascending ``created_at`` order."""
        try:
            keys = list(self.client.scan_iter(match=MESSAGE_PATTERN.format(chat_id=chat_id)))
            values = self.client.mget(keys) if keys else []
        except RedisError as e:
            raise StorageError(f"failed to get messages for {chat_id}: {e}") from e

        messages = []
        for key, value in zip(keys, values):
            # Deleted between SCAN and MGET
            if value is None:
                continue
            try:
                messages.append(Message.model_validate_json(value))
            except ValidationError as e:
                raise StorageError(f"failed to decode message {key!r}: {e}") from e

        return sort_messages(messages)

    def create_conversation(self, conversation: Conversation) -> None:
        key = CONVERSATION_KEY.format(chat_id=conversation.chat_id)
        try:
            self.client.set(key, conversation.model_dump_json())
        except RedisError as e:
            raise StorageError(f"failed to create conversation {conversation.chat_id}: {e}") from e

    def create_message(self, message: Message) -> None:
        key = MESSAGE_KEY.format(chat_id=message.chat_id, message_id=uuid.uuid4())
        try:
            self.client.set(key, message.model_dump_json())
        except RedisError as e:
            raise StorageError(f"failed to create message for {message.chat_id}: {e}") from e

    def delete_messages(self, chat_id: int) -> None:
        try:
            keys = list(self.client.scan_iter(match=MESSAGE_PATTERN.format(chat_id=chat_id)))
            if keys:
                self.client.delete(*keys)
        except RedisError as e:
            raise StorageError(f"failed to delete messages for {chat_id}: {e}") from e
        logger.debug("Deleted %d messages for chat %s", len(keys), chat_id)
