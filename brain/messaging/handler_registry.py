# brain/messaging/handler_registry.py

"""
This module contains the handler registry for the context mediator.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Protocol, TypeAlias, runtime_checkable

from brain.logger import get_logger
from brain.messaging.models import ContextMessage

log = get_logger(__name__)


@runtime_checkable
class MessageHandler(Protocol):
    """The single capability a context exposes to the mediator."""

    async def handle_message(self, message: ContextMessage) -> ContextMessage | None: ...


HandlerFunction: TypeAlias = Callable[
    [ContextMessage], Awaitable[ContextMessage | None] | ContextMessage | None
]


class CallableHandler:
    """
    Adapts a plain function (sync or async) to the MessageHandler capability.

    Sync functions run inline on the event loop, so they must stay short.
    """

    def __init__(self, function: HandlerFunction) -> None:
        self.function = function

    async def handle_message(self, message: ContextMessage) -> ContextMessage | None:
        result = self.function(message)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        name = getattr(self.function, "__qualname__", repr(self.function))
        return f"CallableHandler({name})"


class HandlerRegistry:
    """
    Registry of message handlers keyed by context id.

        - At most one handler per context id
        - Re-registering a context id replaces the previous handler
        - Lookup order of `contexts()` follows registration order
    """

    def __init__(self, *, warn_on_overwrite: bool = True) -> None:
        # context_id → handler
        self._by_context: dict[str, MessageHandler] = {}
        self.warn_on_overwrite = warn_on_overwrite

    def register(
        self, context_id: str, handler: MessageHandler | HandlerFunction
    ) -> MessageHandler:
        """
        Register `handler` for `context_id`, replacing any previous one.

        Args:
            context_id: identifier of the context owning the handler
            handler:    a MessageHandler, or a sync/async callable taking a message

        Returns:
            The registered MessageHandler (callables come back wrapped).

        Raises:
            ValueError: If the handler is neither a MessageHandler nor callable.
        """
        if not context_id:
            raise ValueError("context_id must not be empty")

        if isinstance(handler, MessageHandler):
            registered = handler
        elif callable(handler):
            registered = CallableHandler(handler)
        else:
            raise ValueError(f"Handler must be callable, got {type(handler)}")

        previous = self._by_context.get(context_id)
        if previous is not None and self.warn_on_overwrite:
            log.warning(
                f"Replacing handler for context {context_id!r}: {previous!r} -> {registered!r}"
            )

        self._by_context[context_id] = registered
        log.debug(f"Registered handler for context: {context_id}")
        return registered

    def unregister(self, context_id: str) -> bool:
        """
        Remove the handler for `context_id`.

        Returns:
            True if a handler was removed, False if none was registered.
        """
        removed = self._by_context.pop(context_id, None) is not None
        if removed:
            log.debug(f"Unregistered handler for context: {context_id}")
        return removed

    def get(self, context_id: str) -> MessageHandler | None:
        return self._by_context.get(context_id)

    def contexts(self) -> list[str]:
        return list(self._by_context)

    def __contains__(self, context_id: object) -> bool:
        return context_id in self._by_context

    def __len__(self) -> int:
        return len(self._by_context)
