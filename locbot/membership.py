import logging

from telegram.constants import ChatMemberStatus

from .errors import StorageError
from .store import IdentityStore
from .updates import MembershipChange

logger = logging.getLogger(__name__)

# statuses meaning the bot can no longer see the chat
REMOVED_STATUSES = (ChatMemberStatus.LEFT, ChatMemberStatus.BANNED)


class MembershipWatcher:
    """Revoke a chat's subscription once the bot is removed or blocked."""

    def __init__(self, store: IdentityStore):
        self.store = store

    def handle(self, change: MembershipChange) -> bool:
        """Return True when *change* revoked the chat."""
        if change.status not in REMOVED_STATUSES:
            return False

        logger.info("Bot removed from chat %s (%s)", change.chat_id, change.status)
        try:
            self.store.delete_subscription(change.chat_id)
        except StorageError:
            logger.warning("Could not delete subscription of chat %s", change.chat_id)
        # in a private chat the chat id is the user id
        if change.is_private:
            try:
                self.store.delete_profile(change.chat_id)
            except StorageError:
                logger.warning("Could not delete profile of user %s", change.chat_id)
        return True
