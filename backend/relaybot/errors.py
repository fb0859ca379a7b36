"""Error kinds raised across the relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for relay failures."""


class UnauthorizedError(RelayError):
    """Inbound webhook call did not carry the shared secret."""


class UnknownRouteError(RelayError):
    """A replied-to message has no recorded mapping back to a guest."""

    def __init__(self, message_id: int | str) -> None:
        super().__init__(f"No route recorded for message {message_id}")
        self.message_id = str(message_id)


class ExternalCallError(RelayError):
    """A Telegram API call or content fetch failed at the transport level."""


class StoreUnavailableError(RelayError):
    """The key-value backend could not serve a read or write."""
