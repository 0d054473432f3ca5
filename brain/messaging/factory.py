# brain/messaging/factory.py

"""
Message factory.

Builds well-formed context messages. Every call yields a fresh id and timestamp;
nothing here touches mediator state.
"""

from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from brain.messaging.exceptions import MessageValidationError
from brain.messaging.models import (
    AckStatus,
    AcknowledgmentMessage,
    AnyMessage,
    ContextMessage,
    DataRequestMessage,
    DataResponseMessage,
    ErrorInfo,
    NotificationMessage,
    ResponseStatus,
)

_message_adapter: TypeAdapter[AnyMessage] = TypeAdapter(AnyMessage)


def create_data_request(
    source_context: str,
    target_context: str,
    data_type: str | Enum,
    parameters: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> DataRequestMessage:
    return DataRequestMessage(
        source_context=source_context,
        target_context=target_context,
        data_type=data_type,
        parameters=parameters or {},
        timeout=timeout,
    )


def create_success_response(
    source_context: str,
    target_context: str,
    request_id: str,
    data: dict[str, Any] | None = None,
) -> DataResponseMessage:
    return DataResponseMessage(
        source_context=source_context,
        target_context=target_context,
        request_id=request_id,
        status=ResponseStatus.SUCCESS,
        data=data or {},
    )


def create_error_response(
    source_context: str,
    target_context: str,
    request_id: str,
    code: str | Enum,
    message: str,
    details: dict[str, Any] | None = None,
) -> DataResponseMessage:
    if isinstance(code, Enum):
        code = code.value
    return DataResponseMessage(
        source_context=source_context,
        target_context=target_context,
        request_id=request_id,
        status=ResponseStatus.ERROR,
        error=ErrorInfo(code=code, message=message, details=details),
    )


def create_notification(
    source_context: str,
    target_context: str,
    notification_type: str | Enum,
    payload: dict[str, Any] | None = None,
    requires_ack: bool = False,
) -> NotificationMessage:
    return NotificationMessage(
        source_context=source_context,
        target_context=target_context,
        notification_type=notification_type,
        payload=payload or {},
        requires_ack=requires_ack,
    )


def create_acknowledgment(
    source_context: str,
    target_context: str,
    notification_id: str,
    status: AckStatus | str = AckStatus.PROCESSED,
    message: str | None = None,
) -> AcknowledgmentMessage:
    return AcknowledgmentMessage(
        source_context=source_context,
        target_context=target_context,
        notification_id=notification_id,
        status=status,
        message=message,
    )


def parse_message(data: dict[str, Any] | str | bytes) -> AnyMessage:
    """
    Build the concrete message model from a wire record.

    Accepts a mapping or a JSON document using either the camelCase wire names
    or the snake_case field names; the ``category`` field picks the model.

    Raises:
        MessageValidationError: If the record is not a well-formed message.
    """
    try:
        if isinstance(data, (str, bytes)):
            return _message_adapter.validate_json(data)
        return _message_adapter.validate_python(data)
    except ValidationError as e:
        raise MessageValidationError(f"Malformed message: {e}") from e


def dump_message(message: ContextMessage) -> str:
    """Serialize a message to its camelCase JSON wire shape."""
    return message.model_dump_json(by_alias=True)
