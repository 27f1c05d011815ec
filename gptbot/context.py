"""Service context shared by the dispatcher and the conversation handler."""
from dataclasses import dataclass, field

from telegram import Bot

from gptbot.config import Settings
from gptbot.db import ConversationRepository, create_repository
from gptbot.services.llm import CompletionClient, create_llm
from gptbot.services.telegram import TelegramService


@dataclass
class AppContext:
    """Everything a turn needs, wired once at startup."""

    settings: Settings
    bot: Bot
    repository: ConversationRepository
    completion: CompletionClient
    telegram: TelegramService = field(init=False)

    def __post_init__(self) -> None:
        self.telegram = TelegramService(self.bot)


def build_context(settings: Settings) -> AppContext:
    """Create the bot, storage backend and completion client from settings."""
    return AppContext(
        settings=settings,
        bot=Bot(token=settings.TELEGRAM_BOT_TOKEN),
        repository=create_repository(settings),
        completion=CompletionClient(create_llm(settings)),
    )
