"""Telegram webhook mode: a FastAPI listener feeding an update queue."""
import asyncio
import logging
from json import JSONDecodeError
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from telegram import Bot, Update
from telegram.constants import UpdateType

from gptbot.api.health import router as health_router
from gptbot.config import Settings

logger = logging.getLogger(__name__)

SERVER_START_TIMEOUT = 10.0


def create_webhook_app(bot: Bot, settings: Settings, updates: asyncio.Queue) -> FastAPI:
    """Create the FastAPI application receiving Telegram updates.

    Updates are posted to ``/<bot token>``; each payload is decoded and queued
    for the dispatcher, which processes them one at a time.
    """
    app = FastAPI(
        title="gptbot",
        description="Telegram webhook receiver for the OpenAI chat bot",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.updates = updates
    app.include_router(health_router)

    @app.post(settings.webhook_path, include_in_schema=False)
    async def telegram_webhook(request: Request) -> dict:
        try:
            payload = await request.json()
        except JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Update must be a JSON object")
        try:
            update = Update.de_json(payload, bot)
        except (TypeError, KeyError, ValueError):
            raise HTTPException(status_code=400, detail="Malformed update")
        if update is None:
            raise HTTPException(status_code=400, detail="Empty update")

        await updates.put(update)
        logger.debug("Queued update %s", update.update_id)
        return {"ok": True}

    return app


async def _wait_until_started(server: uvicorn.Server, task: asyncio.Task) -> None:
    """Wait for uvicorn to bind its socket, surfacing startup failures."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + SERVER_START_TIMEOUT
    while not server.started:
        if task.done():
            # serve() returned early: bind failure or startup error
            task.result()
            raise RuntimeError("webhook server exited during startup")
        if loop.time() > deadline:
            raise RuntimeError("webhook server did not start in time")
        await asyncio.sleep(0.1)


async def webhook_updates(bot: Bot, settings: Settings) -> AsyncIterator[Update]:
    """Run the webhook listener, register it with Telegram and yield updates."""
    queue: asyncio.Queue[Update] = asyncio.Queue()
    app = create_webhook_app(bot, settings, queue)

    config = uvicorn.Config(app, host="0.0.0.0", port=settings.HTTP_PORT, log_config=None)
    server = uvicorn.Server(config)
    server_task = asyncio.create_task(server.serve())

    try:
        await _wait_until_started(server, server_task)

        await bot.set_webhook(url=settings.webhook_url, allowed_updates=[UpdateType.MESSAGE])
        logger.info("Webhook registered, listening for updates on port %s", settings.HTTP_PORT)

        while True:
            yield await queue.get()
    finally:
        server.should_exit = True
        await server_task
