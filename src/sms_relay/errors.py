from __future__ import annotations


class RelayError(Exception):
    """Base class for errors raised by the relay."""


class StoreError(RelayError):
    """A subscriber store operation failed (storage unavailable, constraint violation)."""


class DispatchError(RelayError):
    """A single outbound send failed."""

    def __init__(self, contact: str, reason: str) -> None:
        super().__init__(f"Failed to send to {contact}: {reason}")
        self.contact = contact
        self.reason = reason
