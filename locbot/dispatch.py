"""Update routing on top of python-telegram-bot's ``Application``.

Commands, membership changes and locations are registered in separate
handler groups, so one update reaches every category it carries.  The
application processes updates one at a time in arrival order.
"""

import asyncio
import logging

from telegram import Update
from telegram.ext import (
    Application,
    ChatMemberHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .commands import CommandInterpreter
from .membership import MembershipWatcher
from .router import LocationRouter
from .updates import command_request, location_share, membership_change

logger = logging.getLogger(__name__)

COMMANDS = ("help", "stream", "stop")

COMMAND_GROUP = 0
MEMBERSHIP_GROUP = 1
LOCATION_GROUP = 2


def build_application(token: str) -> Application:
    """Application fed by our own webhook endpoint, so it has no updater."""
    return (
        Application.builder()
        .token(token)
        .updater(None)
        .concurrent_updates(False)
        .build()
    )


class UpdateDispatcher:
    def __init__(
        self,
        application: Application,
        commands: CommandInterpreter,
        watcher: MembershipWatcher,
        router: LocationRouter,
    ):
        self.application = application
        self.commands = commands
        self.watcher = watcher
        self.router = router

        for name in COMMANDS:
            application.add_handler(
                CommandHandler(
                    name, self._command_callback(name), filters=filters.UpdateType.MESSAGE
                ),
                group=COMMAND_GROUP,
            )
        application.add_handler(
            ChatMemberHandler(self.on_membership, ChatMemberHandler.MY_CHAT_MEMBER),
            group=MEMBERSHIP_GROUP,
        )
        application.add_handler(
            MessageHandler(filters.LOCATION, self.on_location), group=LOCATION_GROUP
        )
        application.add_error_handler(self.on_error)

    @property
    def bot(self):
        return self.application.bot

    @property
    def accepting(self) -> bool:
        return self.application.running

    async def enqueue(self, update: Update) -> bool:
        """Queue *update* for processing; False once stopping has begun."""
        if not self.application.running:
            return False
        await self.application.update_queue.put(update)
        return True

    # ── handlers ───────────────────────────────────────────────────────

    def _command_callback(self, name: str):
        async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            await self.commands.handle(
                command_request(update.effective_message, name, context.args)
            )

        return callback

    async def on_membership(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        self.watcher.handle(membership_change(update.my_chat_member))

    async def on_location(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        share = location_share(update.effective_message)
        if share is not None:
            await self.router.route(share)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        update_id = update.update_id if isinstance(update, Update) else None
        logger.error("Failed to handle update %s", update_id, exc_info=context.error)

    # ── lifecycle ──────────────────────────────────────────────────────

    async def start(self) -> None:
        await self.application.initialize()
        await self.application.start()
        logger.info("Update loop started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop intake and let already-queued updates drain.

        Draining is abandoned after *timeout* seconds.
        """
        if not self.application.running:
            return
        try:
            await asyncio.wait_for(self.application.stop(), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Update loop did not drain in %ss, %d updates dropped",
                timeout,
                self.application.update_queue.qsize(),
            )
        else:
            logger.info("Update loop stopped")

    async def shutdown(self) -> None:
        """Release the application and its bot; call after ``stop()``."""
        await self.application.shutdown()
