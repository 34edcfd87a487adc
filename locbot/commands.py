import logging
import uuid

from telegram.constants import MessageEntityType
from telegram.helpers import escape_markdown

from .broadcast import channel_path
from .errors import StorageError, TransportError
from .replies import HELP_TEXT, STOP_TEXT, STORAGE_FAILURE_TEXT, STREAM_TEXT
from .store import IdentityStore
from .transport import TelegramTransport
from .updates import CommandRequest

logger = logging.getLogger(__name__)


def generate_secret() -> str:
    return str(uuid.uuid4())


def sanitize_secret(argument: str) -> str:
    """Turn a ``/stream`` argument into a secret usable as a URL segment.

    Dots and slashes are removed, only the first word is kept, and an
    empty result is replaced with a freshly generated secret.
    """
    cleaned = argument.strip().replace(".", "").replace("/", "")
    words = cleaned.split()
    return words[0] if words else generate_secret()


class CommandInterpreter:
    """Apply ``/help``, ``/stream`` and ``/stop`` to a chat's subscription."""

    def __init__(self, store: IdentityStore, transport: TelegramTransport, server_path: str):
        self.store = store
        self.transport = transport
        self.server_path = server_path

    def subscription_url(self, secret: str) -> str:
        return self.server_path + channel_path(secret)

    async def handle(self, request: CommandRequest) -> str | None:
        """Run *request* and send the reply; return the reply text.

        Unknown commands are ignored and return ``None``.
        """
        markdown = False
        if request.command == "help":
            text = HELP_TEXT
        elif request.command == "stream":
            secret = sanitize_secret(request.arguments)
            try:
                self.store.upsert_subscription(request.chat_id, secret)
            except StorageError:
                text = STORAGE_FAILURE_TEXT
            else:
                logger.info("Chat %s streams to %s", request.chat_id, channel_path(secret))
                # MarkdownV2 code spans only need backticks and backslashes escaped
                url = escape_markdown(
                    self.subscription_url(secret), version=2, entity_type=MessageEntityType.CODE
                )
                text = STREAM_TEXT.format(url=url)
                markdown = True
        elif request.command == "stop":
            try:
                self.store.delete_subscription(request.chat_id)
            except StorageError:
                text = STORAGE_FAILURE_TEXT
            else:
                logger.info("Chat %s stopped streaming", request.chat_id)
                text = STOP_TEXT
        else:
            return None

        try:
            await self.transport.send_reply(request.chat_id, text, markdown=markdown)
        except TransportError as exc:
            logger.warning("%s", exc)
        return text
