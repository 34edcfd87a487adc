"""Plain records built from the Telegram objects the handlers receive.

The core modules take these dataclasses instead of ``Update`` so they never
touch the optional sub-fields of Telegram objects.
"""

from dataclasses import dataclass
from datetime import datetime

from telegram import ChatMemberUpdated, Message
from telegram.constants import ChatType


@dataclass(frozen=True)
class CommandRequest:
    chat_id: int
    command: str
    arguments: str = ""


@dataclass(frozen=True)
class MembershipChange:
    chat_id: int
    status: str
    is_private: bool


@dataclass(frozen=True)
class LocationShare:
    chat_id: int
    user_id: int
    display_name: str
    latitude: float
    longitude: float
    date: int


def _timestamp(value: datetime | None) -> int:
    return int(value.timestamp()) if value else 0


def command_request(message: Message, command: str, args: list[str] | None) -> CommandRequest:
    return CommandRequest(
        chat_id=message.chat.id,
        command=command,
        arguments=" ".join(args or []),
    )


def membership_change(member_update: ChatMemberUpdated) -> MembershipChange:
    return MembershipChange(
        chat_id=member_update.chat.id,
        status=str(member_update.new_chat_member.status),
        is_private=member_update.chat.type == ChatType.PRIVATE,
    )


def location_share(message: Message) -> LocationShare | None:
    """Return the location carried by *message*; ``None`` for anonymous posts."""
    if message.location is None or message.from_user is None:
        return None
    user = message.from_user
    return LocationShare(
        chat_id=message.chat.id,
        user_id=user.id,
        display_name=user.username or user.full_name,
        latitude=message.location.latitude,
        longitude=message.location.longitude,
        # live location updates arrive as edits of the original message
        date=_timestamp(message.edit_date or message.date),
    )
