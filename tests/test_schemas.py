"""Tests for conversation and message schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from gptbot.models.schemas import CompletionMessage, Conversation, Message


class TestMessage:
    def test_defaults(self):
        message = Message(chat_id=1, text="hi")
        assert message.is_response is False
        assert message.created_at.tzinfo is not None

    def test_immutable(self):
        message = Message(chat_id=1, text="hi")
        with pytest.raises(ValidationError):
            message.text = "changed"

    def test_user_message_role(self):
        assert Message(chat_id=1, text="q").to_completion_message() == CompletionMessage(role="user", content="q")

    def test_response_role(self):
        reply = Message(chat_id=1, text="a", is_response=True)
        assert reply.to_completion_message() == CompletionMessage(role="assistant", content="a")


class TestConversation:
    def test_to_completion_messages(self):
        conversation = Conversation(
            chat_id=1,
            messages=[
                Message(chat_id=1, text="q"),
                Message(chat_id=1, text="a", is_response=True),
            ],
        )
        assert [m.role for m in conversation.to_completion_messages()] == ["user", "assistant"]

    def test_messages_excluded_from_dump(self):
        conversation = Conversation(chat_id=1, title="t", messages=[Message(chat_id=1, text="q")])
        assert set(conversation.model_dump()) == {"chat_id", "title", "created_at"}
