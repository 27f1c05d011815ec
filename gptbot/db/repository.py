"""Storage contract shared by the Redis and Cloud Datastore backends."""
import logging
from typing import Protocol, runtime_checkable

from gptbot.config import Settings
from gptbot.models.schemas import Conversation, Message

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for storage errors."""


class ConversationNotFoundError(RepositoryError):
    """No conversation record exists for the chat."""

    def __init__(self, chat_id: int):
        super().__init__(f"conversation {chat_id} not found")
        self.chat_id = chat_id


class StorageError(RepositoryError):
    """Any storage failure other than a missing conversation."""


@runtime_checkable
class ConversationRepository(Protocol):
    """Key-value persistence for conversations and their messages."""

    def get_conversation(self, chat_id: int) -> Conversation:
        """Return the conversation with its messages in ascending ``created_at`` order.

        Raises ConversationNotFoundError when the chat has no conversation.
        """
        ...

    def create_conversation(self, conversation: Conversation) -> None:
        ...

    def create_message(self, message: Message) -> None:
        ...

    def delete_messages(self, chat_id: int) -> None:
        """Delete every message of the chat, keeping the conversation record."""
        ...


def sort_messages(messages: list[Message]) -> list[Message]:
    """Order messages chronologically, oldest first."""
    return sorted(messages, key=lambda m: m.created_at)


def create_repository(settings: Settings) -> ConversationRepository:
    """Build the backend selected by ``USE_GCP``."""
    if settings.USE_GCP:
        from gptbot.db.datastore import DatastoreConversationRepository, create_datastore_client

        logger.info("Using Cloud Datastore storage (project %s)", settings.GCP_PROJECT_ID)
        return DatastoreConversationRepository(create_datastore_client(settings))

    from redis import Redis

    from gptbot.db.redis_store import RedisConversationRepository

    logger.info("Using Redis storage at %s (db %s)", settings.REDIS_ADDR, settings.REDIS_DB)
    return RedisConversationRepository(
        Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.REDIS_PASSWORD or None,
            db=settings.REDIS_DB,
        )
    )
