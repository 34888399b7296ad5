"""Custom exception hierarchy for hvacbridge."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hvacbridge.models.broker import StreamStatus


class HvacBridgeError(Exception):
    """Base exception for all hvacbridge errors."""


class HvacConfigError(HvacBridgeError):
    """Invalid or missing configuration."""


class HvacFatalError(HvacBridgeError):
    """Unrecoverable failure.

    The library never exits the process itself; this is raised to the
    caller and only the entry point decides to terminate.
    """


class BrokerError(HvacBridgeError):
    """Databroker communication failure."""


class BrokerRequestError(BrokerError):
    """A unary Get/Set call failed at the transport level."""

    def __init__(self, message: str, *, status: StreamStatus) -> None:
        self.status = status
        super().__init__(message)


class BrokerStreamError(BrokerError):
    """A subscription stream terminated with a non-OK status.

    Cancellation is reported through this exception as well; callers
    inspect ``status.is_cancelled`` to tell a deliberate shutdown apart
    from a transient failure.
    """

    def __init__(self, message: str, *, status: StreamStatus) -> None:
        self.status = status
        super().__init__(message)
