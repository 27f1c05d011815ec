"""Conversation storage: shared contract and backend selection."""

from gptbot.db.repository import (
    ConversationNotFoundError,
    ConversationRepository,
    RepositoryError,
    StorageError,
    create_repository,
)

__all__ = [
    "ConversationNotFoundError",
    "ConversationRepository",
    "RepositoryError",
    "StorageError",
    "create_repository",
]
