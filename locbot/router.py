"""Location fan-out: from a shared location to the subscribers of a group."""

import json
import logging
from dataclasses import dataclass

from .broadcast import Broadcaster, channel_path
from .errors import SerializationError, StorageError, TransportError
from .store import IdentityStore, UserProfile
from .transport import TelegramTransport
from .updates import LocationShare

logger = logging.getLogger(__name__)

PIC_PREFIX = "/pic/"


@dataclass(frozen=True)
class LocationEvent:
    user_id: int
    display_name: str
    latitude: float
    longitude: float
    timestamp: int
    picture_url: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "type": "user_location",
            "user_location": {
                "id": self.user_id,
                "name": self.display_name,
                "lat": self.latitude,
                "lng": self.longitude,
                "date": self.timestamp,
            },
        }
        if self.picture_url:
            payload["picture"] = self.picture_url
        return payload

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_payload(), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot encode location of user {self.user_id}: {exc}") from exc


class LocationRouter:
    def __init__(
        self,
        store: IdentityStore,
        transport: TelegramTransport,
        broker: Broadcaster,
        server_path: str,
        fetch_pictures: bool = False,
    ):
        self.store = store
        self.transport = transport
        self.broker = broker
        self.server_path = server_path
        self.fetch_pictures = fetch_pictures

    def picture_url(self, profile: UserProfile) -> str:
        return self.server_path + PIC_PREFIX + profile.handle

    async def resolve_profile(self, user_id: int) -> UserProfile | None:
        """Return the cached profile of *user_id*, fetching it on first use.

        The picture is fetched at most once per cached user.  Any failure
        means "no picture" and is never raised.
        """
        try:
            profile = self.store.get_profile_by_id(user_id)
        except StorageError:
            return None
        if profile is not None:
            return profile

        try:
            picture = await self.transport.fetch_profile_picture(user_id)
        except TransportError as exc:
            logger.debug("No picture for user %s: %s", user_id, exc)
            return None

        try:
            return self.store.upsert_profile(user_id, picture)
        except StorageError:
            return None

    async def route(self, share: LocationShare) -> bool:
        """Publish *share* to its group's channel.

        Returns False when the chat has no subscription or the event could
        not be encoded.
        """
        try:
            secret = self.store.get_secret(share.chat_id)
        except StorageError:
            return False
        if secret is None:
            return False

        picture_url = None
        if self.fetch_pictures:
            profile = await self.resolve_profile(share.user_id)
            if profile is not None:
                picture_url = self.picture_url(profile)

        event = LocationEvent(
            user_id=share.user_id,
            display_name=share.display_name,
            latitude=share.latitude,
            longitude=share.longitude,
            timestamp=share.date,
            picture_url=picture_url,
        )
        try:
            data = event.to_json()
        except SerializationError as exc:
            logger.error("%s", exc)
            return False

        sent = self.broker.publish(channel_path(secret), data)
        logger.debug("Location of user %s sent to %d subscribers", share.user_id, sent)
        return True
