"""Errors raised by the realtime core.

Per-connection failures (push delivery, transport loss) are absorbed where they
happen; identity, content and persistence failures are surfaced to the caller.
"""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime errors."""

    code = "realtime_error"


class IdentityRejected(RealtimeError):
    code = "identity_rejected"

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    EXPIRED_CREDENTIAL = "expired_credential"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidContent(RealtimeError):
    code = "invalid_content"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownRecipient(RealtimeError):
    code = "unknown_recipient"

    def __init__(self, recipient_id: object) -> None:
        super().__init__(f"Unknown recipient: {recipient_id}")
        self.recipient_id = recipient_id


class PersistenceError(RealtimeError):
    code = "persistence_error"


class PushDeliveryFailure(RealtimeError):
    code = "push_delivery_failure"

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Push to connection {connection_id} failed")
        self.connection_id = connection_id


class TransportLoss(RealtimeError):
    code = "transport_loss"


class ReconnectionExhausted(RealtimeError):
    """Raised when the client gave up after its bounded connect attempts.

    Retryable: the caller may try again later (e.g. after re-authenticating).
    """

    code = "reconnection_exhausted"

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(f"Could not connect after {attempts} attempt(s)")
        self.attempts = attempts
        self.last_error = last_error
