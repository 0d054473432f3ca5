# brain/messaging/mediator.py

"""
Mediator module.

This module contains the in-process broker that routes data requests and
notifications between contexts, correlates responses and acknowledgments,
and purges entries that outlive their timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from asyncio import Future
from typing import Any, Callable, Coroutine, Mapping

from brain.config import MediatorConfigModel, brain_config
from brain.logger import get_logger
from brain.messaging.exceptions import (
    AcknowledgmentTimeoutError,
    MessageValidationError,
    RequestTimeoutError,
)
from brain.messaging.factory import create_error_response
from brain.messaging.handler_registry import (
    HandlerFunction,
    HandlerRegistry,
    MessageHandler,
)
from brain.messaging.models import (
    AckStatus,
    AcknowledgmentMessage,
    DataRequestMessage,
    DataResponseMessage,
    ErrorCode,
    NotificationMessage,
)
from brain.messaging.pending import (
    PendingAcknowledgment,
    PendingRequest,
    PendingTable,
)
from brain.messaging.schemas import get_notification_schema, get_request_schema
from brain.messaging.subscriptions import SubscriptionRegistry
from brain.messaging.validation import (
    validate_notification_payload,
    validate_request_params,
)

log = get_logger(__name__)


def _retrieve_exception(future: Future) -> None:
    # Nobody awaits this future; retrieve the timeout so it is not reported as unhandled.
    if not future.cancelled():
        future.exception()


class Mediator:
    """
    In-process broker routing messages between contexts.

    The mediator is responsible for:
    - Keeping one handler per context id (HandlerRegistry).
    - Tracking which contexts follow which notification types (SubscriptionRegistry).
    - Correlating requests with their responses (pending request table).
    - Holding multi-recipient acknowledgment barriers (pending acknowledgment table).
    - Purging timed-out entries, either from the periodic sweep or per call.

    Everything runs on one event loop, so no locks are taken. Handlers may call
    back into the mediator while being dispatched; every fan-out iterates over
    a copy of its recipient list.
    """

    def __init__(
        self,
        config: MediatorConfigModel | None = None,
        *,
        handlers: Mapping[str, MessageHandler | HandlerFunction] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            config: Mediator settings. Defaults to `brain_config.mediator`.
            handlers: Initial context id → handler registrations.
            clock: Monotonic clock used to age pending entries.
        """
        self.config: MediatorConfigModel = config or brain_config.mediator
        self._clock = clock
        self._handlers = HandlerRegistry(
            warn_on_overwrite=self.config.warn_on_overwrite
        )
        self._subscriptions = SubscriptionRegistry()
        self._pending_requests: PendingTable[PendingRequest] = PendingTable("requests")
        self._pending_acks: PendingTable[PendingAcknowledgment] = PendingTable(
            "acknowledgments"
        )
        self._tasks: set[asyncio.Task] = set()
        self._sweeper: asyncio.Task | None = None

        for context_id, handler in (handlers or {}).items():
            self.register_handler(context_id, handler)

        log.debug("Mediator initialized")

    # --- Handlers ---

    def register_handler(
        self, context_id: str, handler: MessageHandler | HandlerFunction
    ) -> MessageHandler:
        """Register the handler for `context_id`, replacing any previous one."""
        return self._handlers.register(_key(context_id), handler)

    def unregister_handler(self, context_id: str) -> bool:
        """
        Remove the handler for `context_id`.

        The context keeps its subscriptions; it simply stops receiving messages
        until a handler is registered again.
        """
        return self._handlers.unregister(_key(context_id))

    def get_registered_contexts(self) -> list[str]:
        return self._handlers.contexts()

    # --- Subscriptions ---

    def subscribe(self, context_id: str, notification_type: str) -> None:
        self._subscriptions.subscribe(_key(context_id), _key(notification_type))

    def unsubscribe(self, context_id: str, notification_type: str) -> bool:
        return self._subscriptions.unsubscribe(
            _key(context_id), _key(notification_type)
        )

    def get_subscribers(self, notification_type: str) -> list[str]:
        return self._subscriptions.subscribers(_key(notification_type))

    def get_subscriptions(self, context_id: str) -> list[str]:
        return self._subscriptions.subscriptions(_key(context_id))

    # --- Requests ---

    async def send_request(self, request: DataRequestMessage) -> DataResponseMessage:
        """
        Deliver a data request to its target context and wait for the response.

        Expected failures never raise; they come back as error responses:
            - VALIDATION_ERROR: parameters rejected by the data type's schema
              (only when `validate_messages` is enabled).
            - CONTEXT_NOT_FOUND: no handler registered for the target.
            - HANDLER_ERROR: the target handler raised.
            - TIMEOUT: no response within the request's timeout.

        A handler may answer by returning the response, or return None and
        deliver it later through `handle_response`.

        Raises:
            MessageValidationError: If `request` is not a DataRequestMessage.
        """
        if not isinstance(request, DataRequestMessage):
            raise MessageValidationError(
                f"send_request expects a DataRequestMessage, got {type(request).__name__}"
            )

        if self.config.validate_messages and get_request_schema(request.data_type):
            validation = validate_request_params(request)
            if not validation.success:
                return create_error_response(
                    request.target_context,
                    request.source_context,
                    request.id,
                    ErrorCode.VALIDATION_ERROR,
                    validation.error_message or "Invalid parameters",
                )

        handler = self._handlers.get(request.target_context)
        if handler is None:
            log.warning(
                f"No handler registered for target context: {request.target_context}"
            )
            return create_error_response(
                request.target_context,
                request.source_context,
                request.id,
                ErrorCode.CONTEXT_NOT_FOUND,
                f"No handler registered for context: {request.target_context}",
            )

        timeout = (
            request.timeout
            if request.timeout is not None
            else self.config.request_timeout
        )
        pending = self._pending_requests.add(
            request.id,
            PendingRequest(
                future=asyncio.get_running_loop().create_future(),
                started=self._clock(),
                timeout=timeout,
                request_id=request.id,
                source_context=request.source_context,
                target_context=request.target_context,
            ),
        )

        log.debug(f"Forwarding request to {request.target_context}: {request.data_type}")
        self._spawn(self._dispatch_request(handler, request))

        try:
            return await self._wait(pending.future, timeout)
        except TimeoutError:
            elapsed = pending.age(self._clock())
            log.warning(
                f"Request to {request.target_context} timed out after {elapsed:.3f}s: {request.id}"
            )
            return create_error_response(
                request.target_context,
                request.source_context,
                request.id,
                ErrorCode.TIMEOUT,
                f"Request timed out after {elapsed:.3f}s",
            )
        finally:
            self._pending_requests.pop(request.id)

    def handle_response(self, response: DataResponseMessage) -> bool:
        """
        Resolve the pending request whose id equals `response.request_id`.

        Returns:
            True if a pending request was resolved. Unmatched responses are
            dropped and return False.
        """
        if not isinstance(response, DataResponseMessage):
            raise MessageValidationError(
                f"handle_response expects a DataResponseMessage, got {type(response).__name__}"
            )

        pending = self._pending_requests.pop(response.request_id)
        if pending is None:
            log.warning(f"No pending request found for response: {response.request_id}")
            return False

        pending.resolve(response)
        return True

    async def _dispatch_request(
        self, handler: MessageHandler, request: DataRequestMessage
    ) -> None:
        try:
            reply = await handler.handle_message(request)
        except Exception as e:  # noqa: BLE001
            log.exception(f"Error handling request to {request.target_context}: {e}")
            self.handle_response(
                create_error_response(
                    request.target_context,
                    request.source_context,
                    request.id,
                    ErrorCode.HANDLER_ERROR,
                    f"Error handling request: {e}",
                )
            )
            return

        match reply:
            case DataResponseMessage():
                self.handle_response(reply)
            case None:
                log.debug(
                    f"Handler for {request.target_context} deferred its response to {request.id}"
                )
            case _:
                log.warning(
                    f"Handler for {request.target_context} answered request {request.id} "
                    f"with a {type(reply).__name__}; still waiting for a response"
                )

    # --- Notifications ---

    async def send_notification(
        self,
        notification: NotificationMessage,
        wait_for_acks: bool = False,
        timeout: float | None = None,
    ) -> list[str]:
        """
        Deliver a notification to its recipients.

        Recipients of a broadcast (`target_context == "*"`) are the registered
        contexts subscribed to the notification type. An explicit target is
        reached whenever it has a handler, subscribed or not.

        Notifications without acknowledgment are delivered before this returns,
        so the result reports which handlers actually completed.

        Args:
            notification: The notification to deliver.
            wait_for_acks: For notifications requiring acknowledgment, wait until
                every recipient has acknowledged.
            timeout: Seconds to wait for acknowledgments. Defaults to
                `config.ack_timeout`.

        Returns:
            Without acknowledgment: the recipients whose handler completed.
            With acknowledgment and no wait: every recipient it was sent to.
            With acknowledgment and `wait_for_acks`: the recipients that did not
                reject it (a `rejected` acknowledgment completes the barrier but
                is left out).

        Raises:
            MessageValidationError: If `notification` is malformed.
            AcknowledgmentTimeoutError: If `wait_for_acks` is set and some
                recipient did not acknowledge in time.
        """
        if not isinstance(notification, NotificationMessage):
            raise MessageValidationError(
                f"send_notification expects a NotificationMessage, got {type(notification).__name__}"
            )

        if self.config.validate_messages and get_notification_schema(
            notification.notification_type
        ):
            validate_notification_payload(notification, raise_on_error=True)

        recipients = self._resolve_recipients(notification)
        if not recipients:
            log.debug(f"No recipients for notification: {notification.notification_type}")
            return []

        if not notification.requires_ack:
            return await self._fan_out(notification, recipients)

        ack_timeout = timeout if timeout is not None else self.config.ack_timeout
        pending = self._pending_acks.add(
            notification.id,
            PendingAcknowledgment(
                future=asyncio.get_running_loop().create_future(),
                started=self._clock(),
                timeout=ack_timeout,
                notification_id=notification.id,
                source_context=notification.source_context,
                target_contexts=set(recipients),
            ),
        )
        self._spawn(self._fan_out(notification, recipients))

        if not wait_for_acks:
            pending.future.add_done_callback(_retrieve_exception)
            return recipients

        try:
            statuses = await self._wait(pending.future, ack_timeout)
        except AcknowledgmentTimeoutError:
            raise
        except TimeoutError as e:
            elapsed = pending.age(self._clock())
            log.warning(
                f"Notification {notification.id} timed out after {elapsed:.3f}s "
                f"waiting for: {', '.join(pending.missing)}"
            )
            raise AcknowledgmentTimeoutError(
                notification.id, elapsed, pending.missing
            ) from e
        finally:
            self._pending_acks.pop(notification.id)

        return [
            context_id
            for context_id in recipients
            if statuses.get(context_id) is not AckStatus.REJECTED
        ]

    def handle_acknowledgment(self, acknowledgment: AcknowledgmentMessage) -> bool:
        """
        Record an acknowledgment against its pending notification.

        Returns:
            True if the notification was still pending (whether or not this
            acknowledgment completed it), False if it is unknown, already fully
            acknowledged, or purged by timeout.

        Raises:
            MessageValidationError: If `acknowledgment` is not an AcknowledgmentMessage.
        """
        if not isinstance(acknowledgment, AcknowledgmentMessage):
            raise MessageValidationError(
                f"handle_acknowledgment expects an AcknowledgmentMessage, got {type(acknowledgment).__name__}"
            )

        notification_id = acknowledgment.notification_id
        pending = self._pending_acks.get(notification_id)
        if pending is None:
            log.debug(f"No pending acknowledgment for notification: {notification_id}")
            return False

        log.debug(
            f"Received {acknowledgment.status} acknowledgment from "
            f"{acknowledgment.source_context} for {notification_id}"
        )
        if pending.acknowledge(
            acknowledgment.source_context, AckStatus(acknowledgment.status)
        ):
            self._pending_acks.pop(notification_id)
            pending.settle(dict(pending.acknowledged))
            log.debug(f"Notification {notification_id} fully acknowledged")
        return True

    def _resolve_recipients(self, notification: NotificationMessage) -> list[str]:
        if notification.is_broadcast:
            return [
                context_id
                for context_id in self._handlers.contexts()
                if self._subscriptions.is_subscribed(
                    context_id, notification.notification_type
                )
            ]

        if notification.target_context in self._handlers:
            return [notification.target_context]

        log.debug(
            f"No handler registered for notification target: {notification.target_context}"
        )
        return []

    async def _fan_out(
        self, notification: NotificationMessage, recipients: list[str]
    ) -> list[str]:
        """Deliver to every recipient concurrently; returns those that succeeded."""
        recipients = list(recipients)
        results = await asyncio.gather(
            *(self._deliver(notification, context_id) for context_id in recipients)
        )
        return [
            context_id
            for context_id, delivered in zip(recipients, results)
            if delivered
        ]

    async def _deliver(self, notification: NotificationMessage, context_id: str) -> bool:
        """
        Deliver one copy of `notification` to `context_id`.
        Logs errors but does not propagate them, so one failing recipient never
        stops the others.
        """
        handler = self._handlers.get(context_id)
        if handler is None:
            log.debug(f"Context {context_id} unregistered before delivery; skipping")
            return False

        message = notification.model_copy(
            update={"target_context": context_id}, deep=True
        )
        try:
            log.debug(
                f"Sending {notification.notification_type} notification to {context_id}"
            )
            reply = await handler.handle_message(message)
        except Exception as e:  # noqa: BLE001
            log.exception(f"Error sending notification to {context_id}: {e}")
            return False

        match reply:
            case AcknowledgmentMessage() if notification.requires_ack:
                if reply.source_context != context_id:
                    reply = reply.model_copy(update={"source_context": context_id})
                self.handle_acknowledgment(reply)
        return True

    # --- Timeouts ---

    def cleanup_timed_out(self) -> int:
        """
        Purge pending requests and acknowledgments older than their timeout.

        Each purged entry's future is rejected with a TIMEOUT error. Iterates
        over snapshots, so entries added meanwhile are left alone.

        Returns:
            The number of entries purged.
        """
        now = self._clock()
        purged = 0

        for request_id, pending_request in self._pending_requests.expired(now):
            self._pending_requests.pop(request_id)
            elapsed = pending_request.age(now)
            log.warning(f"Request {request_id} timed out after {elapsed:.3f}s")
            pending_request.fail(RequestTimeoutError(request_id, elapsed))
            purged += 1

        for notification_id, pending_ack in self._pending_acks.expired(now):
            self._pending_acks.pop(notification_id)
            elapsed = pending_ack.age(now)
            log.warning(
                f"Notification {notification_id} timed out after {elapsed:.3f}s "
                f"waiting for: {', '.join(pending_ack.missing)}"
            )
            pending_ack.fail(
                AcknowledgmentTimeoutError(notification_id, elapsed, pending_ack.missing)
            )
            purged += 1

        return purged

    @property
    def is_sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Start the periodic timeout sweep on the running loop."""
        if self.is_sweeping:
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_loop(), name="mediator-timeout-sweep"
        )
        log.debug(f"Timeout sweep started (every {self.config.sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the periodic timeout sweep."""
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        log.debug("Timeout sweep stopped")

    async def __aenter__(self) -> Mediator:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            self.cleanup_timed_out()

    async def _wait(self, future: Future, timeout: float | None) -> Any:
        # The running sweep enforces deadlines; otherwise each caller keeps its own.
        if timeout is None or self.is_sweeping:
            return await future
        return await asyncio.wait_for(future, timeout)

    def _spawn(self, coroutine: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # --- Observability ---

    @property
    def pending_request_count(self) -> int:
        return len(self._pending_requests)

    @property
    def pending_acknowledgment_count(self) -> int:
        return len(self._pending_acks)


def _key(value: Any) -> str:
    return getattr(value, "value", value)


def create_mediator(
    config: MediatorConfigModel | None = None,
    *,
    handlers: Mapping[str, MessageHandler | HandlerFunction] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Mediator:
    """
    Build a new, isolated mediator.

    The application builds one at start-up and hands it to every context; tests
    build a fresh one per test.
    """
    log.debug("Creating mediator instance")
    return Mediator(config, handlers=handlers, clock=clock)
