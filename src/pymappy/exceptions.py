"""Custom exception hierarchy for pymappy."""

from __future__ import annotations


class MappyError(Exception):
    """Base exception for all pymappy errors."""


class MappyConfigError(MappyError):
    """Invalid or missing configuration."""


class ActorNotAttachedError(MappyError):
    """The host game process is not attached, or a read did not complete.

    Never fatal: the polling loop logs it and retries on the next tick.
    """

    def __init__(self, message: str = "Game process not attached", *, timed_out: bool = False) -> None:
        self.timed_out = timed_out
        super().__init__(message)


class MappyTransportError(MappyError):
    """Outbound channel failure (connect, closed socket, broker error)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class TransportUnavailableError(MappyTransportError):
    """Publisher is not connected.

    ``Publisher.send`` never raises this; it is only raised by explicit
    operations such as waiting for the connection.
    """


class SchedulerStateError(MappyError):
    """Illegal poll scheduler lifecycle call (double start, start after stop)."""


class ProtocolError(MappyError):
    """A wire message could not be parsed."""

    def __init__(self, message: str, *, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)
