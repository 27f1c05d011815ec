"""Tests for startup wiring, mode selection and error reporting."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError
from telegram.error import InvalidToken

from gptbot import main as main_module
from gptbot.services.errors import init_sentry, report_exception


def _fake_context():
    ctx = MagicMock()
    ctx.bot.__aenter__ = AsyncMock(return_value=ctx.bot)
    ctx.bot.__aexit__ = AsyncMock(return_value=False)
    return ctx


class TestRun:
    @pytest.mark.asyncio
    async def test_long_polling_by_default(self, settings):
        ctx = _fake_context()
        with (
            patch.object(main_module, "build_context", return_value=ctx),
            patch.object(main_module, "poll_updates") as mock_poll,
            patch.object(main_module, "webhook_updates") as mock_webhook,
            patch.object(main_module.Dispatcher, "run", new_callable=AsyncMock) as mock_run,
        ):
            await main_module.run(settings)

        mock_poll.assert_called_once_with(ctx.bot)
        mock_webhook.assert_not_called()
        mock_run.assert_awaited_once_with(mock_poll.return_value)

    @pytest.mark.asyncio
    async def test_webhook_mode(self, settings):
        settings.TELEGRAM_USE_WEBHOOK = True
        settings.TELEGRAM_WEBHOOK_URL = "https://bot.example.com"
        ctx = _fake_context()
        with (
            patch.object(main_module, "build_context", return_value=ctx),
            patch.object(main_module, "poll_updates") as mock_poll,
            patch.object(main_module, "webhook_updates") as mock_webhook,
            patch.object(main_module.Dispatcher, "run", new_callable=AsyncMock),
        ):
            await main_module.run(settings)

        mock_webhook.assert_called_once_with(ctx.bot, settings)
        mock_poll.assert_not_called()


class TestMain:
    def test_invalid_config_exits(self):
        error = ValidationError.from_exception_data("Settings", [])
        with (
            patch.object(main_module, "get_settings", side_effect=error),
            pytest.raises(SystemExit) as exc_info,
        ):
            main_module.main()
        assert exc_info.value.code == 1

    def test_bad_token_exits(self, settings):
        def _fail(coro):
            coro.close()
            raise InvalidToken()

        with (
            patch.object(main_module, "get_settings", return_value=settings),
            patch.object(main_module, "setup_logging"),
            patch.object(main_module, "init_sentry"),
            patch.object(main_module.asyncio, "run", side_effect=_fail),
            patch.object(main_module, "report_exception") as mock_report,
            pytest.raises(SystemExit) as exc_info,
        ):
            main_module.main()

        assert exc_info.value.code == 1
        mock_report.assert_called_once()


class TestErrorReporting:
    def test_sentry_disabled_without_dsn(self):
        with patch("gptbot.services.errors.sentry_sdk") as mock_sentry:
            assert init_sentry("") is False
        mock_sentry.init.assert_not_called()

    def test_sentry_enabled_with_dsn(self):
        with patch("gptbot.services.errors.sentry_sdk") as mock_sentry:
            assert init_sentry("https://key@sentry.example.com/1") is True
        mock_sentry.init.assert_called_once_with(dsn="https://key@sentry.example.com/1", traces_sample_rate=1.0)

    def test_report_exception_logs_and_captures(self, caplog):
        error = RuntimeError("boom")
        with patch("gptbot.services.errors.sentry_sdk") as mock_sentry:
            report_exception(error, "failed to handle message")

        mock_sentry.capture_exception.assert_called_once_with(error)
        assert "failed to handle message: boom" in caplog.text
