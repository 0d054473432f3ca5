# brain/messaging/exceptions.py

"""
Exceptions raised by the context mediator.
"""

from brain.messaging.models import ErrorCode


class MediatorError(Exception):
    """Base exception for the context mediator."""

    code: ErrorCode | None = None


class MessageValidationError(MediatorError, ValueError):
    """Raised when a message or its parameters are malformed."""

    code = ErrorCode.VALIDATION_ERROR


class DuplicatePendingEntryError(MediatorError):
    """Raised when a pending entry is added twice under the same message id."""

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(f"A pending entry for message '{message_id}' already exists.")


class RequestTimeoutError(MediatorError, TimeoutError):
    """Raised on a pending request's future when it outlives its timeout."""

    code = ErrorCode.TIMEOUT

    def __init__(self, request_id: str, elapsed: float):
        self.request_id = request_id
        self.elapsed = elapsed
        super().__init__(f"Request {request_id} timed out after {elapsed:.3f}s")


class AcknowledgmentTimeoutError(MediatorError, TimeoutError):
    """Raised when a notification is not acknowledged by every recipient in time."""

    code = ErrorCode.TIMEOUT

    def __init__(self, notification_id: str, elapsed: float, missing: list[str]):
        self.notification_id = notification_id
        self.elapsed = elapsed
        self.missing = missing
        super().__init__(
            f"Notification {notification_id} timed out after {elapsed:.3f}s "
            f"waiting for acknowledgments from: {', '.join(missing)}"
        )
