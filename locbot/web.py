"""FastAPI application: webhook intake, SSE channels and picture serving.

Endpoints:
- POST /hook/{hook}   Telegram webhook, the hook is a per-process random id
- GET  /sub/{secret}  Server-Sent Events stream of a group's locations
- GET  /pic/{handle}  cached profile picture (only with FETCH_USER_PIC)
- GET  /health        liveness probe
- /                   static map UI (only with ENABLE_MAP)
"""

import logging
import secrets
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles
from telegram import Update

from .broadcast import Broadcaster, channel_path
from .config import Settings
from .dispatch import UpdateDispatcher
from .errors import BroadcasterClosedError, StorageError, SubscriberLimitError
from .store import IdentityStore
from .transport import TelegramTransport

logger = logging.getLogger(__name__)

HOOK_PREFIX = "/hook/"
SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: Settings,
    store: IdentityStore,
    transport: TelegramTransport,
    broker: Broadcaster,
    dispatcher: UpdateDispatcher,
    hook: str | None = None,
) -> FastAPI:
    hook = hook or uuid.uuid4().hex

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: any failure here aborts the process
        store.init_db()
        await transport.start()
        await transport.register_webhook(settings.server_path + HOOK_PREFIX + hook)
        await transport.register_commands()
        await dispatcher.start()

        yield

        # Shutdown
        await dispatcher.stop(settings.shutdown_timeout)
        await transport.drop_webhook()
        broker.close()
        # also shuts the bot down
        await dispatcher.shutdown()
        try:
            store.close()
        except StorageError:
            logger.warning("Store did not close cleanly")
        logger.info("Shutdown complete")

    app = FastAPI(title="locbot", lifespan=lifespan, docs_url=None, redoc_url=None)
    app.state.hook = hook

    @app.post(HOOK_PREFIX + "{token}")
    async def telegram_webhook(token: str, request: Request) -> Response:
        if not secrets.compare_digest(token.encode(), hook.encode()):
            return Response(status_code=404)
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            logger.warning("Malformed webhook payload")
            return Response(status_code=400)
        try:
            update = Update.de_json(payload, dispatcher.bot)
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.warning("Malformed webhook payload")
            return Response(status_code=400)
        if not await dispatcher.enqueue(update):
            return Response(status_code=503)
        return Response(status_code=200)

    @app.get("/sub/{secret}")
    async def subscribe(secret: str) -> Response:
        try:
            subscriber = broker.subscribe(channel_path(secret))
        except SubscriberLimitError as exc:
            logger.info("%s", exc)
            return Response(status_code=429)
        except BroadcasterClosedError:
            return Response(status_code=503)
        return StreamingResponse(
            broker.stream(subscriber),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    if settings.fetch_user_pic:

        @app.api_route("/pic/{handle}", methods=ALL_METHODS)
        def picture(handle: str, request: Request) -> Response:
            if request.method != "GET":
                return Response(status_code=404)
            try:
                profile = store.get_profile_by_handle(handle)
            except StorageError:
                profile = None
            if profile is None:
                return Response(status_code=404)
            return Response(content=profile.picture, media_type="image/jpeg")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "accepting_updates": dispatcher.accepting}

    if settings.enable_map:
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="map")

    return app
