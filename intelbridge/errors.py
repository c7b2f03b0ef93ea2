"""Exception taxonomy for intelbridge."""

from __future__ import annotations

from typing import Optional


class IntelBridgeError(Exception):
    """Base class for all intelbridge errors."""


class BlobResolutionError(IntelBridgeError):
    """Raised when an ephemeral blob reference cannot be resolved.

    The reference was revoked, never registered, or is not a ``blob:`` URL.
    """

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason or "blob reference expired or invalid"
        super().__init__(f"{self.reason}: {url}")


class MetadataServiceError(IntelBridgeError):
    """Raised for any failed exchange with the metadata service.

    Covers network errors, non-2xx responses (``message`` is the server's
    ``error`` field, verbatim) and malformed response bodies.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class InvalidTransitionError(IntelBridgeError):
    """Raised when the analysis state machine is driven out of order."""

    def __init__(self, from_state, to_state) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition: {from_state.value} -> {to_state.value}"
        )
