import pytest

from brain.messaging.factory import create_data_request, create_success_response
from brain.messaging.handler_registry import (
    CallableHandler,
    HandlerRegistry,
    MessageHandler,
)


class EchoHandler:
    async def handle_message(self, message):
        return create_success_response(
            message.target_context, message.source_context, message.id, {"echo": True}
        )


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry()


def test_register_and_get(registry: HandlerRegistry):
    handler = EchoHandler()
    registered = registry.register("notes-context", handler)

    assert registered is handler
    assert registry.get("notes-context") is handler
    assert "notes-context" in registry
    assert len(registry) == 1


def test_register_wraps_plain_functions(registry: HandlerRegistry):
    def on_message(message):
        return None

    registered = registry.register("notes-context", on_message)

    assert isinstance(registered, CallableHandler)
    assert isinstance(registered, MessageHandler)
    assert registered.function is on_message


def test_register_rejects_non_callables(registry: HandlerRegistry):
    with pytest.raises(ValueError, match="callable"):
        registry.register("notes-context", 42)


def test_register_rejects_empty_context_id(registry: HandlerRegistry):
    with pytest.raises(ValueError):
        registry.register("", EchoHandler())


def test_reregistering_replaces_previous_handler(registry: HandlerRegistry, caplog):
    first, second = EchoHandler(), EchoHandler()
    registry.register("notes-context", first)

    with caplog.at_level("WARNING", logger="brain"):
        registry.register("notes-context", second)

    assert registry.get("notes-context") is second
    assert len(registry) == 1
    assert "Replacing handler" in caplog.text


def test_overwrite_warning_can_be_disabled(caplog):
    registry = HandlerRegistry(warn_on_overwrite=False)
    registry.register("notes-context", EchoHandler())

    with caplog.at_level("WARNING", logger="brain"):
        registry.register("notes-context", EchoHandler())

    assert "Replacing handler" not in caplog.text


def test_unregister(registry: HandlerRegistry):
    registry.register("notes-context", EchoHandler())

    assert registry.unregister("notes-context") is True
    assert registry.get("notes-context") is None
    assert registry.unregister("notes-context") is False


def test_contexts_follow_registration_order(registry: HandlerRegistry):
    for context_id in ("c", "a", "b"):
        registry.register(context_id, EchoHandler())

    assert registry.contexts() == ["c", "a", "b"]

    registry.unregister("a")
    assert registry.contexts() == ["c", "b"]


@pytest.mark.asyncio
async def test_callable_handler_runs_sync_functions():
    request = create_data_request("a", "b", "notes.search")
    handler = CallableHandler(
        lambda message: create_success_response("b", "a", message.id)
    )

    reply = await handler.handle_message(request)

    assert reply.request_id == request.id


@pytest.mark.asyncio
async def test_callable_handler_awaits_async_functions():
    request = create_data_request("a", "b", "notes.search")

    async def on_message(message):
        return create_success_response("b", "a", message.id, {"async": True})

    reply = await CallableHandler(on_message).handle_message(request)

    assert reply.data == {"async": True}
