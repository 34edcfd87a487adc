import logging
import signal

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from .broadcast import Broadcaster
from .commands import CommandInterpreter
from .config import Settings
from .dispatch import UpdateDispatcher, build_application
from .membership import MembershipWatcher
from .router import LocationRouter
from .store import IdentityStore
from .transport import TelegramTransport
from .web import create_app

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
    if not debug:
        # httpx logs every Bot API request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)


def build_app(settings: Settings) -> FastAPI:
    """Wire every component together; nothing is started yet."""
    application = build_application(settings.bot_token)
    store = IdentityStore(db_path=settings.db_path)
    transport = TelegramTransport(application.bot)
    broker = Broadcaster(max_subscribers=settings.group_limit)
    dispatcher = UpdateDispatcher(
        application,
        commands=CommandInterpreter(store, transport, settings.server_path),
        watcher=MembershipWatcher(store),
        router=LocationRouter(
            store,
            transport,
            broker,
            settings.server_path,
            fetch_pictures=settings.fetch_user_pic,
        ),
    )
    return create_app(settings, store, transport, broker, dispatcher)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.bot_debug)

    app = build_app(settings)

    logger.info("Serving on %s:%s", settings.bind_host, settings.bind_port)
    config = uvicorn.Config(
        app,
        host=settings.bind_host,
        port=settings.bind_port,
        log_level="debug" if settings.bot_debug else "info",
        log_config=None,
        lifespan="on",
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )
    server = uvicorn.Server(config)

    # uvicorn re-raises the signal it handled once shutdown is complete;
    # SIGTERM then lands here as KeyboardInterrupt like SIGINT does
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        server.run()
    except KeyboardInterrupt:
        logger.debug("Interrupted")
    if not server.started:
        raise SystemExit("locbot failed to start")
    logger.info("Stopped")


if __name__ == "__main__":
    main()
