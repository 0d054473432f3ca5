# brain/messaging/validation.py

"""
Validation utilities.

Validates request parameters and notification payloads against the schemas
held by `brain.messaging.schemas`.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from brain.logger import get_logger
from brain.messaging.exceptions import MessageValidationError
from brain.messaging.models import DataRequestMessage, NotificationMessage
from brain.messaging.schemas import get_notification_schema, get_request_schema

log = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass
class ValidationResult(Generic[SchemaT]):
    success: bool
    data: SchemaT | None = None
    error_message: str | None = None


def format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
        for e in error.errors()
    )


def _validate(
    kind: str,
    message_type: str,
    schema: type[BaseModel] | None,
    values: dict[str, Any],
    *,
    raise_on_error: bool,
    log_errors: bool,
) -> ValidationResult:
    if schema is None:
        error_message = f"No schema defined for {kind} type: {message_type}"
        if log_errors:
            log.warning(error_message)
        if raise_on_error:
            raise MessageValidationError(error_message)
        return ValidationResult(success=False, error_message=error_message)

    try:
        return ValidationResult(success=True, data=schema.model_validate(values))
    except ValidationError as e:
        error_message = format_validation_error(e)
        if log_errors:
            log.warning(f"Validation error for {message_type}: {error_message}")
        if raise_on_error:
            raise MessageValidationError(error_message) from e
        return ValidationResult(success=False, error_message=error_message)


def validate_request_params(
    message: DataRequestMessage,
    *,
    raise_on_error: bool = False,
    log_errors: bool = True,
) -> ValidationResult:
    """
    Validate request parameters against the schema registered for its data type.

    Args:
        message: The request message to validate.
        raise_on_error: Raise MessageValidationError instead of returning a failure.
        log_errors: Log validation failures at warning level.

    Returns:
        A ValidationResult holding the parsed parameters on success.
    """
    if not isinstance(message, DataRequestMessage):
        raise MessageValidationError(
            f"Invalid message format: not a data request message ({type(message).__name__})"
        )
    return _validate(
        "request",
        message.data_type,
        get_request_schema(message.data_type),
        message.parameters,
        raise_on_error=raise_on_error,
        log_errors=log_errors,
    )


def validate_notification_payload(
    message: NotificationMessage,
    *,
    raise_on_error: bool = False,
    log_errors: bool = True,
) -> ValidationResult:
    """
    Validate a notification payload against the schema registered for its type.

    Args:
        message: The notification message to validate.
        raise_on_error: Raise MessageValidationError instead of returning a failure.
        log_errors: Log validation failures at warning level.

    Returns:
        A ValidationResult holding the parsed payload on success.
    """
    if not isinstance(message, NotificationMessage):
        raise MessageValidationError(
            f"Invalid message format: not a notification message ({type(message).__name__})"
        )
    return _validate(
        "notification",
        message.notification_type,
        get_notification_schema(message.notification_type),
        message.payload,
        raise_on_error=raise_on_error,
        log_errors=log_errors,
    )
