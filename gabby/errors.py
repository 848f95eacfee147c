"""
Error taxonomy for discovery and messaging.

Recoverable errors (MalformedPayload, SendFailed, UnknownPeer) are handled
where they occur; NoRouteAvailable and BindFailed stop the node at startup.
"""


class GabbyError(Exception):
    """Base class for all errors raised by gabby."""


class MalformedPayload(GabbyError):
    """Raised when a discovery datagram cannot be decoded."""

    def __init__(self, payload: bytes, reason: str):
        super().__init__(f"malformed discovery payload {payload!r}: {reason}")
        self.payload = payload
        self.reason = reason


class NoRouteAvailable(GabbyError):
    """Raised when no outward-facing IPv4 address can be resolved."""


class BindFailed(GabbyError):
    """Raised when a listening socket cannot be bound."""

    def __init__(self, host: str, port: int, cause: Exception):
        super().__init__(f"cannot bind {host}:{port}: {cause}")
        self.host = host
        self.port = port
        self.cause = cause


class SendFailed(GabbyError):
    """Raised when a datagram or message could not be sent."""


class UnknownPeer(GabbyError):
    """Raised when a display name is not present in the peer directory."""

    def __init__(self, name: str):
        super().__init__(f"unknown peer: {name}")
        self.name = name
