# brain/messaging/schemas.py

"""
Schema registry.

Pydantic models describing the parameters of each known data request and the
payloads of the notifications contexts publish. Contexts may register schemas
for their own custom types with `register_request_schema` and
`register_notification_schema`.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from brain.messaging.models import DataRequestType, NotificationType


class MessageSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# --- Request parameters ---


class NotesSearchParams(MessageSchema):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, gt=0)
    tags: list[str] | None = None


class NoteByIdParams(MessageSchema):
    id: str = Field(min_length=1)


class NotesSemanticSearchParams(MessageSchema):
    text: str = Field(min_length=1)
    limit: int | None = Field(default=None, gt=0)
    tags: list[str] | None = None


class ProfileDataParams(MessageSchema):
    pass


class ConversationHistoryParams(MessageSchema):
    conversation_id: str = Field(min_length=1)
    limit: int | None = Field(default=None, gt=0)


class ExternalSourceSearchParams(MessageSchema):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, gt=0)
    sources: list[str] | None = None


class WebsiteStatusParams(MessageSchema):
    environment: str | None = None


# --- Notification payloads ---


class NotePayload(MessageSchema):
    note_id: str = Field(min_length=1)
    title: str | None = None
    tags: list[str] | None = None


class NoteDeletedPayload(MessageSchema):
    note_id: str = Field(min_length=1)


class ProfileUpdatedPayload(MessageSchema):
    profile_id: str | None = None


class ConversationPayload(MessageSchema):
    conversation_id: str = Field(min_length=1)


class ConversationTurnAddedPayload(ConversationPayload):
    turn_id: str | None = None


class ExternalSourcesStatusPayload(MessageSchema):
    available_sources: list[str] = Field(default_factory=list)


class WebsitePayload(MessageSchema):
    output_dir: str | None = None
    url: str | None = None


REQUEST_SCHEMAS: dict[str, type[BaseModel]] = {
    DataRequestType.NOTES_SEARCH.value: NotesSearchParams,
    DataRequestType.NOTE_BY_ID.value: NoteByIdParams,
    DataRequestType.NOTES_SEMANTIC_SEARCH.value: NotesSemanticSearchParams,
    DataRequestType.PROFILE_DATA.value: ProfileDataParams,
    DataRequestType.CONVERSATION_HISTORY.value: ConversationHistoryParams,
    DataRequestType.EXTERNAL_SOURCES.value: ExternalSourceSearchParams,
    DataRequestType.WEBSITE_STATUS.value: WebsiteStatusParams,
}

NOTIFICATION_SCHEMAS: dict[str, type[BaseModel]] = {
    NotificationType.NOTE_CREATED.value: NotePayload,
    NotificationType.NOTE_UPDATED.value: NotePayload,
    NotificationType.NOTE_DELETED.value: NoteDeletedPayload,
    NotificationType.PROFILE_UPDATED.value: ProfileUpdatedPayload,
    NotificationType.CONVERSATION_STARTED.value: ConversationPayload,
    NotificationType.CONVERSATION_CLEARED.value: ConversationPayload,
    NotificationType.CONVERSATION_TURN_ADDED.value: ConversationTurnAddedPayload,
    NotificationType.EXTERNAL_SOURCES_STATUS.value: ExternalSourcesStatusPayload,
    NotificationType.EXTERNAL_SOURCES_AVAILABILITY.value: ExternalSourcesStatusPayload,
    NotificationType.WEBSITE_GENERATED.value: WebsitePayload,
    NotificationType.WEBSITE_DEPLOYED.value: WebsitePayload,
}


def _key(message_type: str | Enum) -> str:
    return message_type.value if isinstance(message_type, Enum) else message_type


def register_request_schema(data_type: str | Enum, schema: type[BaseModel]) -> None:
    REQUEST_SCHEMAS[_key(data_type)] = schema


def register_notification_schema(
    notification_type: str | Enum, schema: type[BaseModel]
) -> None:
    NOTIFICATION_SCHEMAS[_key(notification_type)] = schema


def get_request_schema(data_type: str | Enum) -> type[BaseModel] | None:
    return REQUEST_SCHEMAS.get(_key(data_type))


def get_notification_schema(notification_type: str | Enum) -> type[BaseModel] | None:
    return NOTIFICATION_SCHEMAS.get(_key(notification_type))

