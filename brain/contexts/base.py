# brain/contexts/base.py

"""
Context base module.

This module contains the base class that wires a domain context to the mediator.
"""

from __future__ import annotations

import abc
from enum import Enum, StrEnum
from typing import Any, ClassVar

from brain.constants import BROADCAST_TARGET
from brain.logger import get_logger
from brain.messaging.factory import (
    create_acknowledgment,
    create_data_request,
    create_error_response,
    create_notification,
    create_success_response,
)
from brain.messaging.mediator import Mediator
from brain.messaging.models import (
    AckStatus,
    AcknowledgmentMessage,
    ContextMessage,
    DataRequestMessage,
    DataResponseMessage,
    NotificationMessage,
)

log = get_logger(__name__)


class ContextId(StrEnum):
    NOTES = "notes-context"
    PROFILE = "profile-context"
    CONVERSATION = "conversation-context"
    EXTERNAL_SOURCES = "external-sources-context"
    WEBSITE = "website-context"


class ContextMessaging(abc.ABC):
    """
    Abstract base class wiring one domain context to the mediator.

    Subclasses set `context_id`, optionally list the notification types they
    follow in `subscriptions`, and implement `handle_request`. The instance is
    the context's MessageHandler: constructing it registers it with the
    mediator it is given.
    """

    context_id: ClassVar[str]
    subscriptions: ClassVar[tuple[str, ...]] = ()

    def __init__(self, mediator: Mediator) -> None:
        self.mediator = mediator
        mediator.register_handler(self.context_id, self)
        for notification_type in self.subscriptions:
            mediator.subscribe(self.context_id, notification_type)
        log.debug(f"{type(self).__name__} registered as {self.context_id}")

    async def handle_message(self, message: ContextMessage) -> ContextMessage | None:
        match message:
            case DataRequestMessage():
                return await self.handle_request(message)
            case NotificationMessage():
                return await self._receive_notification(message)
            case DataResponseMessage():
                self.mediator.handle_response(message)
            case AcknowledgmentMessage():
                self.mediator.handle_acknowledgment(message)
            case _:
                log.warning(
                    f"{self.context_id} received an unsupported message: {type(message).__name__}"
                )
        return None

    @abc.abstractmethod
    async def handle_request(
        self, request: DataRequestMessage
    ) -> DataResponseMessage | None:
        """
        Answer a data request addressed to this context.

        Return the response, or None to answer later through
        `mediator.handle_response`. Exceptions become HANDLER_ERROR responses.
        """
        raise NotImplementedError

    async def handle_notification(self, notification: NotificationMessage) -> None:
        """Called for every notification delivered to this context."""
        log.debug(
            f"{self.context_id} received unhandled notification type: {notification.notification_type}"
        )

    async def _receive_notification(
        self, notification: NotificationMessage
    ) -> AcknowledgmentMessage | None:
        if not notification.requires_ack:
            await self.handle_notification(notification)
            return None

        try:
            await self.handle_notification(notification)
        except Exception as e:  # noqa: BLE001
            log.exception(
                f"{self.context_id} failed to process {notification.notification_type}: {e}"
            )
            return self.acknowledge(notification, AckStatus.REJECTED, str(e))
        return self.acknowledge(notification)

    # --- Message helpers ---

    def respond(
        self, request: DataRequestMessage, data: dict[str, Any] | None = None
    ) -> DataResponseMessage:
        return create_success_response(
            self.context_id, request.source_context, request.id, data
        )

    def fail(
        self,
        request: DataRequestMessage,
        code: str | Enum,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> DataResponseMessage:
        return create_error_response(
            self.context_id, request.source_context, request.id, code, message, details
        )

    def acknowledge(
        self,
        notification: NotificationMessage,
        status: AckStatus = AckStatus.PROCESSED,
        message: str | None = None,
    ) -> AcknowledgmentMessage:
        return create_acknowledgment(
            self.context_id, notification.source_context, notification.id, status, message
        )

    async def request(
        self,
        target_context: str,
        data_type: str | Enum,
        parameters: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> DataResponseMessage:
        """Send a data request from this context through the mediator."""
        return await self.mediator.send_request(
            create_data_request(
                self.context_id, target_context, data_type, parameters, timeout
            )
        )

    async def notify(
        self,
        notification_type: str | Enum,
        payload: dict[str, Any] | None = None,
        *,
        target_context: str = BROADCAST_TARGET,
        requires_ack: bool = False,
        wait_for_acks: bool = False,
        timeout: float | None = None,
    ) -> list[str]:
        """Publish a notification from this context through the mediator."""
        return await self.mediator.send_notification(
            create_notification(
                self.context_id, target_context, notification_type, payload, requires_ack
            ),
            wait_for_acks=wait_for_acks,
            timeout=timeout,
        )

    def subscribe(self, notification_type: str | Enum) -> None:
        self.mediator.subscribe(self.context_id, notification_type)

    def unsubscribe(self, notification_type: str | Enum) -> bool:
        return self.mediator.unsubscribe(self.context_id, notification_type)

    def close(self) -> None:
        """Stop receiving messages. Subscriptions are kept for re-registration."""
        self.mediator.unregister_handler(self.context_id)
