# brain/messaging/models.py

"""
Message models.

Pydantic models for the four message categories exchanged through the
mediator, plus the enums naming categories, statuses, error codes and the
known request and notification types.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, Literal, TypeAlias
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from brain.constants import BROADCAST_TARGET


class MessageCategory(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"
    ACKNOWLEDGMENT = "acknowledgment"


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class AckStatus(str, Enum):
    RECEIVED = "received"
    PROCESSED = "processed"
    REJECTED = "rejected"


class ErrorCode(str, Enum):
    CONTEXT_NOT_FOUND = "CONTEXT_NOT_FOUND"
    HANDLER_ERROR = "HANDLER_ERROR"
    TIMEOUT = "TIMEOUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class DataRequestType(str, Enum):
    NOTES_SEARCH = "notes.search"
    NOTE_BY_ID = "notes.byId"
    NOTES_SEMANTIC_SEARCH = "notes.semanticSearch"
    PROFILE_DATA = "profile.data"
    CONVERSATION_HISTORY = "conversation.history"
    EXTERNAL_SOURCES = "externalSources.search"
    WEBSITE_STATUS = "website.status"


class NotificationType(str, Enum):
    NOTE_CREATED = "notes.created"
    NOTE_UPDATED = "notes.updated"
    NOTE_DELETED = "notes.deleted"
    PROFILE_UPDATED = "profile.updated"
    CONVERSATION_STARTED = "conversation.started"
    CONVERSATION_CLEARED = "conversation.cleared"
    CONVERSATION_TURN_ADDED = "conversation.turnAdded"
    EXTERNAL_SOURCES_STATUS = "externalSources.statusChanged"
    EXTERNAL_SOURCES_AVAILABILITY = "externalSources.availability"
    EXTERNAL_SOURCES_SEARCH = "externalSources.search"
    WEBSITE_GENERATED = "website.generated"
    WEBSITE_DEPLOYED = "website.deployed"


def _type_value(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else value


class ErrorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: dict[str, Any] | None = None


class ContextMessage(BaseModel):
    """Envelope fields shared by every message routed through the mediator."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        use_enum_values=True,
    )

    id: str = Field(default_factory=lambda: str(uuid4()))
    source_context: str
    target_context: str
    category: MessageCategory
    timestamp: float = Field(default_factory=lambda: time.time())

    @field_validator("source_context", "target_context", mode="before")
    @classmethod
    def _validate_context_id(cls, value: str | Enum) -> str:
        value = _type_value(value)
        if not value or len(value) > 100:
            raise ValueError("context id must be 1-100 characters")
        return value

    @property
    def is_broadcast(self) -> bool:
        return self.target_context == BROADCAST_TARGET


class DataRequestMessage(ContextMessage):
    category: Literal["request"] = "request"
    data_type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("data_type", mode="before")
    @classmethod
    def _validate_data_type(cls, value: str | Enum) -> str:
        value = _type_value(value)
        if not value:
            raise ValueError("data_type must not be empty")
        return value


class DataResponseMessage(ContextMessage):
    category: Literal["response"] = "response"
    request_id: str
    status: ResponseStatus
    data: dict[str, Any] | None = None
    error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _check_status_payload(self) -> DataResponseMessage:
        if self.status == ResponseStatus.ERROR and self.error is None:
            raise ValueError("error responses must carry error info")
        if self.status == ResponseStatus.SUCCESS and self.error is not None:
            raise ValueError("success responses cannot carry error info")
        return self

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS


class NotificationMessage(ContextMessage):
    category: Literal["notification"] = "notification"
    notification_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    requires_ack: bool = False

    @field_validator("notification_type", mode="before")
    @classmethod
    def _validate_notification_type(cls, value: str | Enum) -> str:
        value = _type_value(value)
        if not value:
            raise ValueError("notification_type must not be empty")
        return value


class AcknowledgmentMessage(ContextMessage):
    category: Literal["acknowledgment"] = "acknowledgment"
    notification_id: str
    status: AckStatus = AckStatus.PROCESSED
    message: str | None = None


AnyMessage: TypeAlias = Annotated[
    DataRequestMessage | DataResponseMessage | NotificationMessage | AcknowledgmentMessage,
    Field(discriminator="category"),
]
