"""Exception hierarchy shared by the store, transport and broadcast layers."""


class LocbotError(Exception):
    """Base class for all locbot errors."""


class StorageError(LocbotError):
    """The SQLite identity store could not complete an operation."""


class TransportError(LocbotError):
    """A Telegram Bot API call failed."""


class NoPictureError(TransportError):
    """The user has no profile picture to fetch."""


class SerializationError(LocbotError):
    """A location event could not be encoded as JSON."""


class SubscriberLimitError(LocbotError):
    """A broadcast channel already holds the maximum number of subscribers."""


class BroadcasterClosedError(LocbotError):
    """The broadcaster has been shut down and accepts no new subscribers."""
