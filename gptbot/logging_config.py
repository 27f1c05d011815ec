"""Logging setup for the bot process.

``setup_logging`` installs a formatter that prefixes each line with the process
role and, while a turn is being handled, the chat id bound in ``chat_id_var``
by the dispatcher.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from pathlib import Path

from gptbot.config import Settings

chat_id_var: ContextVar[str] = ContextVar("chat_id_var", default="")


class ContextFilter(logging.Filter):
    """Injects ``role`` and ``chat_id`` onto each record."""

    def __init__(self, role: str) -> None:
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role  # type: ignore[attr-defined]
        record.chat_id = chat_id_var.get("")  # type: ignore[attr-defined]
        return True


class ContextFormatter(logging.Formatter):
    """Produces lines like:

    2026-02-17 14:30:00 [Bot][INFO] gptbot.bot.poller:48 - Starting long polling
    2026-02-17 14:30:01 [Bot][Chat 123456][DEBUG] gptbot.services.conversation:92 - Requesting completion
    """

    def format(self, record: logging.LogRecord) -> str:
        role = getattr(record, "role", "")
        chat_id = getattr(record, "chat_id", "")

        parts = [f"[{role}]"] if role else []
        if chat_id:
            parts.append(f"[Chat {chat_id}]")
        parts.append(f"[{record.levelname}]")

        prefix = "".join(parts)
        timestamp = self.formatTime(record, self.datefmt)
        location = f"{record.name}:{record.lineno}"
        message = record.getMessage()

        formatted = f"{timestamp} {prefix} {location} - {message}"
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            formatted += "\n" + record.exc_text
        return formatted


def setup_logging(role: str, settings: Settings) -> None:
    """Install the stderr handler (and the rotating file handler when
    ``LOG_FILE`` is set) on the root logger.

    Only the first call configures anything.
    """
    root = logging.getLogger()

    # already configured
    if any(getattr(h, "name", None) == "_gptbot_stream" for h in root.handlers):
        return

    level = logging.DEBUG if settings.TELEGRAM_DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root.setLevel(level)

    ctx_filter = ContextFilter(role)
    formatter = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    # Console handler (stderr)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.name = "_gptbot_stream"
    stream_handler.addFilter(ctx_filter)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    # File handler (optional)
    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.name = "_gptbot_file"
        file_handler.addFilter(ctx_filter)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Tame noisy third-party loggers
    noisy = ["httpx", "httpcore", "urllib3", "openai", "google", "hpack"]
    if not settings.TELEGRAM_DEBUG:
        noisy.append("telegram")
    for name in noisy:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Make uvicorn loggers propagate through root so they get our format
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
