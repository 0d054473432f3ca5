from brain.messaging.exceptions import (
    AcknowledgmentTimeoutError,
    DuplicatePendingEntryError,
    MediatorError,
    MessageValidationError,
    RequestTimeoutError,
)
from brain.messaging.factory import (
    create_acknowledgment,
    create_data_request,
    create_error_response,
    create_notification,
    create_success_response,
    dump_message,
    parse_message,
)
from brain.messaging.handler_registry import CallableHandler, MessageHandler
from brain.messaging.mediator import Mediator, create_mediator
from brain.messaging.models import (
    AckStatus,
    AcknowledgmentMessage,
    AnyMessage,
    ContextMessage,
    DataRequestMessage,
    DataRequestType,
    DataResponseMessage,
    ErrorCode,
    ErrorInfo,
    MessageCategory,
    NotificationMessage,
    NotificationType,
    ResponseStatus,
)

__all__ = (
    "AckStatus",
    "AcknowledgmentMessage",
    "AcknowledgmentTimeoutError",
    "AnyMessage",
    "CallableHandler",
    "ContextMessage",
    "DataRequestMessage",
    "DataRequestType",
    "DataResponseMessage",
    "DuplicatePendingEntryError",
    "ErrorCode",
    "ErrorInfo",
    "Mediator",
    "MediatorError",
    "MessageCategory",
    "MessageHandler",
    "MessageValidationError",
    "NotificationMessage",
    "NotificationType",
    "RequestTimeoutError",
    "ResponseStatus",
    "create_acknowledgment",
    "create_data_request",
    "create_error_response",
    "create_mediator",
    "create_notification",
    "create_success_response",
    "dump_message",
    "parse_message",
)
