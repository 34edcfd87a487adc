"""Thin wrapper around ``telegram.Bot`` for everything the core consumes.

All ``TelegramError`` failures are converted into ``TransportError`` so
callers only deal with locbot's own exception types.
"""

import logging

from telegram import Bot, BotCommand
from telegram.constants import ParseMode
from telegram.error import TelegramError

from .errors import NoPictureError, TransportError
from .replies import BOT_COMMANDS

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message", "edited_message", "my_chat_member"]


class TelegramTransport:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def start(self) -> None:
        """Initialize the bot; this is where a bad token is detected."""
        try:
            await self.bot.initialize()
        except TelegramError as exc:
            raise TransportError(f"Bot authorization failed: {exc}") from exc
        logger.info("Authorized on account %s", self.bot.username)

    async def register_webhook(self, url: str) -> None:
        try:
            await self.bot.set_webhook(url=url, allowed_updates=ALLOWED_UPDATES)
            info = await self.bot.get_webhook_info()
        except TelegramError as exc:
            raise TransportError(f"Webhook registration failed: {exc}") from exc

        logger.info(
            "Webhook registered (pending updates: %s)", info.pending_update_count
        )
        if info.last_error_date:
            logger.warning("Telegram callback failed: %s", info.last_error_message)

    async def drop_webhook(self) -> None:
        try:
            await self.bot.delete_webhook(drop_pending_updates=True)
        except TelegramError as exc:
            logger.warning("Failed to drop webhook: %s", exc)

    async def register_commands(self) -> None:
        commands = [BotCommand(name, description) for name, description in BOT_COMMANDS]
        try:
            await self.bot.set_my_commands(commands)
        except TelegramError as exc:
            logger.warning("Failed to register bot commands: %s", exc)

    async def send_reply(self, chat_id: int, text: str, markdown: bool = False) -> None:
        parse_mode = ParseMode.MARKDOWN_V2 if markdown else None
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)
        except TelegramError as exc:
            raise TransportError(f"Failed to reply to chat {chat_id}: {exc}") from exc

    async def fetch_profile_picture(self, user_id: int) -> bytes:
        """Download the user's current profile picture.

        Raises ``NoPictureError`` when the user has none, and
        ``TransportError`` for any API or download failure.
        """
        try:
            photos = await self.bot.get_user_profile_photos(user_id, limit=1)
            if not photos.total_count or not photos.photos:
                raise NoPictureError(f"User {user_id} has no profile picture")
            # smallest size of the most recent photo is plenty for a map marker
            photo = photos.photos[0][0]
            file = await self.bot.get_file(photo.file_id)
            data = await file.download_as_bytearray()
        except TelegramError as exc:
            raise TransportError(f"Failed to fetch picture of user {user_id}: {exc}") from exc
        return bytes(data)
