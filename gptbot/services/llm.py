"""LangChain completion client for the OpenAI chat API."""
import logging

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from gptbot.config import Settings
from gptbot.models.schemas import CompletionMessage

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a useful chat assistant. Answers should be as detailed as possible using markdown formatting. "
    "Answers should consist of the following blocks (without explicitly mentioning the block name):\n"
    "1. Description of the topic/problem/question/object\n"
    "2. Detailed explanation of the answer to the problem\n"
    "3. Examples\n"
    "4. Criticism/Another point of view\n"
    "5. A summary\n\n"
    "Remember that you are an intelligent assistant, so all your answers must be scientifically validated, "
    "as if you were an expert in your field."
)

_CONTEXT_LENGTH_CODE = "context_length_exceeded"
_CONTEXT_LENGTH_PHRASES = (
    "please reduce the length of the messages",
    "maximum context length",
)


class LLMError(Exception):
    """Base class for completion failures."""


class ContextTooLongError(LLMError):
    """The provider rejected the prompt as exceeding its context window."""


class CompletionError(LLMError):
    """Any other completion failure."""


def _message_to_langchain(msg: CompletionMessage):
    """Convert a completion message to a LangChain message object."""
    if msg.role == "system":
        return SystemMessage(content=msg.content)
    elif msg.role == "assistant":
        return AIMessage(content=msg.content)
    else:
        return HumanMessage(content=msg.content)


def is_context_length_error(exc: BaseException) -> bool:
    """Tell whether *exc* is OpenAI's prompt-too-long rejection."""
    if not isinstance(exc, openai.BadRequestError):
        return False
    if getattr(exc, "code", None) == _CONTEXT_LENGTH_CODE:
        return True
    text = str(exc).lower()
    return any(phrase in text for phrase in _CONTEXT_LENGTH_PHRASES)


def create_llm(settings: Settings, **kwargs) -> BaseChatModel:
    """Create the OpenAI chat model from settings."""
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        api_key=settings.OPENAI_API_KEY,
        **kwargs,
    )


def with_system_prompt(messages: list[CompletionMessage]) -> list[CompletionMessage]:
    """Prepend the system prompt to a message list."""
    return [CompletionMessage(role="system", content=SYSTEM_PROMPT), *messages]


class CompletionClient:
    """Sync completion client; callers on the event loop use ``asyncio.to_thread``."""

    def __init__(self, llm: BaseChatModel):
        self.llm = llm

    def complete(self, user_label: str, messages: list[CompletionMessage]) -> str:
        """Send the conversation and return the reply text.

        ``user_label`` is forwarded as the OpenAI ``user`` field.
        """
        lc_messages = [_message_to_langchain(m) for m in with_system_prompt(messages)]
        try:
            response = self.llm.invoke(lc_messages, user=user_label)
        except Exception as e:
            if is_context_length_error(e):
                raise ContextTooLongError(str(e)) from e
            raise CompletionError(f"failed to create completion request: {e}") from e

        content = response.content
        if not isinstance(content, str):
            # Content blocks: keep the text parts
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        logger.debug("Completion returned %d characters", len(content))
        return content
