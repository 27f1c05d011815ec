"""Pydantic schemas for conversations and messages."""
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CompletionMessage(BaseModel):
    """Chat message in the completion API format."""

    role: Literal["system", "user", "assistant"]
    content: str


class Message(BaseModel):
    """A single message in a conversation with a user."""

    model_config = ConfigDict(frozen=True)

    chat_id: int  # telegram chat id
    created_at: datetime = Field(default_factory=utcnow)
    is_response: bool = False  # true if the message is a response from the bot
    text: str

    def to_completion_message(self) -> CompletionMessage:
        """Map bot replies to ``assistant`` and user messages to ``user``."""
        role = "assistant" if self.is_response else "user"
        return CompletionMessage(role=role, content=self.text)


class Conversation(BaseModel):
    """A whole conversation with a user.

    This can be a single private chat with the bot or a group chat.
    ``messages`` is never persisted with the record; repositories fill it in
    from the message collection when reading.
    """

    chat_id: int
    title: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    messages: list[Message] = Field(default_factory=list, exclude=True)

    def to_completion_messages(self) -> list[CompletionMessage]:
        """Convert the conversation history to completion messages."""
        return [m.to_completion_message() for m in self.messages]
