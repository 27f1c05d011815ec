"""Google Cloud Datastore conversation repository."""
import logging
import os
import uuid

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import datastore
from google.cloud.datastore.query import PropertyFilter

from gptbot.config import Settings
from gptbot.db.repository import ConversationNotFoundError, StorageError, sort_messages
from gptbot.models.schemas import Conversation, Message

logger = logging.getLogger(__name__)

CONVERSATION_KIND = "conversation"
MESSAGE_KIND = "messages"

# Datastore caps mutations per commit
_DELETE_BATCH = 500


def create_datastore_client(settings: Settings) -> datastore.Client:
    """Create a client, using the service-account file when it exists."""
    if settings.GCP_CREDENTIALS and os.path.exists(settings.GCP_CREDENTIALS):
        return datastore.Client.from_service_account_json(
            settings.GCP_CREDENTIALS, project=settings.GCP_PROJECT_ID
        )
    return datastore.Client(project=settings.GCP_PROJECT_ID)


class DatastoreConversationRepository:
    """One ``conversation`` entity per chat, one ``messages`` entity per message.

    Conversation keys are named after the chat id (group chat ids are
    negative, which Datastore does not accept as numeric ids). Message
    entities carry an indexed ``chat_id`` used to query a chat's history.
    """

    def __init__(self, client: datastore.Client):
        self.client = client

    def _conversation_key(self, chat_id: int) -> datastore.Key:
        return self.client.key(CONVERSATION_KIND, str(chat_id))

    def get_conversation(self, chat_id: int) -> Conversation:
        try:
            entity = self.client.get(self._conversation_key(chat_id))
        except GoogleAPICallError as e:
            raise StorageError(f"failed to get conversation {chat_id}: {e}") from e

        if entity is None:
            raise ConversationNotFoundError(chat_id)

        conversation = Conversation(
            chat_id=entity["chat_id"],
            title=entity.get("title", ""),
            created_at=entity["created_at"],
        )
        conversation.messages = self.get_conversation_messages(chat_id)
        return conversation

    def get_conversation_messages(self, chat_id: int) -> list[Message]:
        """Return all messages of a chat in ascending ``created_at`` order."""
        query = self.client.query(kind=MESSAGE_KIND)
        query.add_filter(filter=PropertyFilter("chat_id", "=", chat_id))
        try:
            entities = list(query.fetch())
        except GoogleAPICallError as e:
            raise StorageError(f"failed to get messages for {chat_id}: {e}") from e

        return sort_messages(
            [
                Message(
                    chat_id=e["chat_id"],
                    created_at=e["created_at"],
                    is_response=e["is_response"],
                    text=e["text"],
                )
                for e in entities
            ]
        )

    def create_conversation(self, conversation: Conversation) -> None:
        entity = datastore.Entity(
            key=self._conversation_key(conversation.chat_id),
            exclude_from_indexes=("title",),
        )
        entity.update(conversation.model_dump())
        try:
            self.client.put(entity)
        except GoogleAPICallError as e:
            raise StorageError(f"failed to put conversation {conversation.chat_id}: {e}") from e

    def create_message(self, message: Message) -> None:
        entity = datastore.Entity(
            key=self.client.key(MESSAGE_KIND, str(uuid.uuid4())),
            exclude_from_indexes=("text",),
        )
        entity.update(message.model_dump())
        try:
            self.client.put(entity)
        except GoogleAPICallError as e:
            raise StorageError(f"failed to add message for {message.chat_id}: {e}") from e

    def delete_messages(self, chat_id: int) -> None:
        query = self.client.query(kind=MESSAGE_KIND)
        query.add_filter(filter=PropertyFilter("chat_id", "=", chat_id))
        query.keys_only()
        try:
            keys = [entity.key for entity in query.fetch()]
            for i in range(0, len(keys), _DELETE_BATCH):
                self.client.delete_multi(keys[i : i + _DELETE_BATCH])
        except GoogleAPICallError as e:
            raise StorageError(f"failed to delete messages for {chat_id}: {e}") from e
        logger.debug("Deleted %d messages for chat %s", len(keys), chat_id)
