"""Root conftest: shared fixtures for all bot tests."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Ensure the repository root is on sys.path
_root_dir = str(Path(__file__).resolve().parent)
if _root_dir not in sys.path:
    sys.path.insert(0, _root_dir)

# Required settings for anything that reads the environment
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("OPEN_AI_TOKEN", "sk-test")

import fakeredis
import pytest
from telegram import Chat, Message as TelegramMessage, Update, User

from gptbot.config import Settings
from gptbot.context import AppContext
from gptbot.db.redis_store import RedisConversationRepository
from gptbot.services.llm import CompletionClient


def make_telegram_message(
    text: str | None = "hello",
    user_id: int = 111,
    username: str | None = "alice",
    chat_id: int | None = None,
    chat_type: str = Chat.PRIVATE,
    chat_title: str | None = None,
    message_id: int = 1,
) -> TelegramMessage:
    chat = Chat(
        id=chat_id if chat_id is not None else user_id,
        type=chat_type,
        title=chat_title,
        username=username if chat_type == Chat.PRIVATE else None,
    )
    return TelegramMessage(
        message_id=message_id,
        date=datetime.now(timezone.utc),
        chat=chat,
        from_user=User(id=user_id, first_name="Alice", is_bot=False, username=username),
        text=text,
    )


def make_update(update_id: int = 100, **message_kwargs) -> Update:
    return Update(update_id=update_id, message=make_telegram_message(**message_kwargs))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        TELEGRAM_BOT_TOKEN="123456:TEST-TOKEN",
        OPEN_AI_TOKEN="sk-test",
    )


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def repository(redis_client):
    return RedisConversationRepository(redis_client)


@pytest.fixture
def bot():
    """A stand-in for ``telegram.Bot`` with awaitable API methods."""
    mock_bot = MagicMock()
    mock_bot.send_message = AsyncMock(return_value=None)
    mock_bot.send_chat_action = AsyncMock(return_value=True)
    return mock_bot


@pytest.fixture
def completion():
    client = MagicMock(spec=CompletionClient)
    client.complete.return_value = "Hi there!"
    return client


@pytest.fixture
def ctx(settings, bot, repository, completion):
    return AppContext(
        settings=settings,
        bot=bot,
        repository=repository,
        completion=completion,
    )
