"""Tests for the logging configuration."""

from __future__ import annotations

import logging

import pytest

from gptbot.logging_config import ContextFilter, ContextFormatter, chat_id_var, setup_logging


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Remove any handlers we add during tests so they don't leak."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in before:
            handler.close()
    root.handlers = before
    root.setLevel(level)
    logging.getLogger("telegram").setLevel(logging.NOTSET)


def _record(name="gptbot.test", level=logging.INFO, msg="hello"):
    return logging.LogRecord(name, level, "", 42, msg, (), None)


# ── ContextFilter tests ────────────────────────────────────────────────────


def test_context_filter_stamps_role():
    record = _record()
    assert ContextFilter("Bot").filter(record) is True
    assert record.role == "Bot"  # type: ignore[attr-defined]
    assert record.chat_id == ""  # type: ignore[attr-defined]


def test_context_filter_reads_chat_id():
    token = chat_id_var.set("123456")
    try:
        record = _record()
        ContextFilter("Bot").filter(record)
        assert record.chat_id == "123456"  # type: ignore[attr-defined]
    finally:
        chat_id_var.reset(token)


# ── ContextFormatter tests ─────────────────────────────────────────────────


def test_formatter_without_chat():
    record = _record()
    ContextFilter("Bot").filter(record)

    line = ContextFormatter(datefmt="%Y-%m-%d %H:%M:%S").format(record)

    assert "[Bot][INFO] gptbot.test:42 - hello" in line
    assert "[Chat" not in line


def test_formatter_with_chat():
    record = _record(level=logging.WARNING)
    record.role = "Bot"  # type: ignore[attr-defined]
    record.chat_id = "-1001"  # type: ignore[attr-defined]

    line = ContextFormatter().format(record)

    assert "[Bot][Chat -1001][WARNING]" in line


def test_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, "", 1, "failed", (), sys.exc_info())

    line = ContextFormatter().format(record)

    assert "failed" in line
    assert "ValueError: boom" in line


# ── setup_logging tests ────────────────────────────────────────────────────


def test_setup_logging_idempotent(settings):
    setup_logging("Bot", settings)
    setup_logging("Bot", settings)

    names = [h.name for h in logging.getLogger().handlers]
    assert names.count("_gptbot_stream") == 1


def test_setup_logging_debug_flag(settings):
    settings.TELEGRAM_DEBUG = True
    setup_logging("Bot", settings)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("telegram").level == logging.NOTSET


def test_setup_logging_file_handler(settings, tmp_path):
    settings.LOG_FILE = str(tmp_path / "logs" / "bot.log")
    setup_logging("Bot", settings)

    names = [h.name for h in logging.getLogger().handlers]
    assert "_gptbot_file" in names
    assert (tmp_path / "logs").is_dir()


def test_setup_logging_uses_configured_level(settings):
    settings.LOG_LEVEL = "warning"
    setup_logging("Bot", settings)

    assert logging.getLogger().level == logging.WARNING
