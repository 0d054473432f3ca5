"""
Behavior tests for the Mediator.

Covers request/response correlation, notification fan-out, acknowledgment
barriers and timeout cleanup. Handlers are small in-test classes so the
tests observe only what reaches them through the public mediator API.
"""

import asyncio

import pytest

from brain.config import MediatorConfigModel
from brain.messaging.exceptions import (
    AcknowledgmentTimeoutError,
    MessageValidationError,
)
from brain.messaging.factory import (
    create_acknowledgment,
    create_data_request,
    create_notification,
    create_success_response,
)
from brain.messaging.mediator import Mediator, create_mediator
from brain.messaging.models import (
    AckStatus,
    DataRequestType,
    ErrorCode,
    NotificationType,
    ResponseStatus,
)

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """Records every delivered message and answers with `reply(message)`."""

    def __init__(self, reply=None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.received = []
        self.delivered = asyncio.Event()

    async def handle_message(self, message):
        self.received.append(message)
        self.delivered.set()
        if self.error is not None:
            raise self.error
        if self.reply is not None:
            return self.reply(message)
        return None


def respond_with(data):
    def reply(message):
        return create_success_response(
            message.target_context, message.source_context, message.id, data
        )

    return reply


def acknowledge(message):
    return create_acknowledgment(
        message.target_context, message.source_context, message.id
    )


async def settle():
    # Let spawned dispatch tasks run to their next suspension point.
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> MediatorConfigModel:
    return MediatorConfigModel(request_timeout=5.0, ack_timeout=5.0, sweep_interval=0.01)


@pytest.fixture
def mediator(config: MediatorConfigModel) -> Mediator:
    return create_mediator(config)


# --- Requests --- #


async def test_request_round_trip(mediator: Mediator):
    handler = RecordingHandler(reply=respond_with({"value": 42}))
    mediator.register_handler("b", handler)
    request = create_data_request("a", "b", "custom.query", {"key": "k"})

    response = await mediator.send_request(request)

    assert response.status == ResponseStatus.SUCCESS
    assert response.request_id == request.id
    assert response.data == {"value": 42}
    assert handler.received == [request]
    assert mediator.pending_request_count == 0


async def test_notes_search_scenario(mediator: Mediator):
    notes = [{"id": "n1", "title": "Ecosystem architecture"}]

    def search(message):
        assert message.data_type == DataRequestType.NOTES_SEARCH.value
        assert message.parameters["query"] == "ecosystem"
        return create_success_response(
            "notes-context", message.source_context, message.id, {"notes": notes}
        )

    mediator.register_handler("notes-context", search)

    response = await mediator.send_request(
        create_data_request(
            "conversation-context",
            "notes-context",
            DataRequestType.NOTES_SEARCH,
            {"query": "ecosystem"},
        )
    )

    assert response.ok
    assert response.data == {"notes": notes}
    assert response.source_context == "notes-context"
    assert response.target_context == "conversation-context"


async def test_request_to_unknown_context(mediator: Mediator):
    request = create_data_request("a", "ghost", "custom.query")

    response = await mediator.send_request(request)

    assert response.status == ResponseStatus.ERROR
    assert response.error.code == ErrorCode.CONTEXT_NOT_FOUND.value
    assert response.request_id == request.id
    assert response.source_context == "ghost"
    assert response.target_context == "a"
    assert mediator.pending_request_count == 0


async def test_request_after_unregister(mediator: Mediator):
    mediator.register_handler("b", RecordingHandler(reply=respond_with({})))
    assert mediator.unregister_handler("b") is True

    response = await mediator.send_request(create_data_request("a", "b", "custom.query"))

    assert response.error.code == ErrorCode.CONTEXT_NOT_FOUND.value
    assert mediator.unregister_handler("b") is False


async def test_handler_exception_becomes_handler_error(mediator: Mediator):
    mediator.register_handler("b", RecordingHandler(error=RuntimeError("boom")))

    response = await mediator.send_request(create_data_request("a", "b", "custom.query"))

    assert response.status == ResponseStatus.ERROR
    assert response.error.code == ErrorCode.HANDLER_ERROR.value
    assert "boom" in response.error.message
    assert mediator.pending_request_count == 0


async def test_silent_handler_times_out(mediator: Mediator):
    mediator.register_handler("b", RecordingHandler())

    response = await mediator.send_request(
        create_data_request("a", "b", "custom.query", timeout=0.05)
    )

    assert response.error.code == ErrorCode.TIMEOUT.value
    assert mediator.pending_request_count == 0


async def test_non_response_reply_keeps_request_pending(mediator: Mediator):
    mediator.register_handler("b", RecordingHandler(reply=acknowledge))

    response = await mediator.send_request(
        create_data_request("a", "b", "custom.query", timeout=0.05)
    )

    assert response.error.code == ErrorCode.TIMEOUT.value


async def test_deferred_response(mediator: Mediator):
    handler = RecordingHandler()
    mediator.register_handler("b", handler)
    request = create_data_request("a", "b", "custom.query")

    task = asyncio.create_task(mediator.send_request(request))
    await handler.delivered.wait()

    assert mediator.pending_request_count == 1
    assert mediator.handle_response(create_success_response("b", "a", "unknown-id")) is False
    assert mediator.pending_request_count == 1

    late = create_success_response("b", "a", request.id, {"late": True})
    assert mediator.handle_response(late) is True
    assert mediator.handle_response(late) is False

    assert await task is late
    assert mediator.pending_request_count == 0


async def test_concurrent_requests_are_correlated_by_id(mediator: Mediator):
    async def echo(message):
        await asyncio.sleep(0.01 if message.parameters["n"] % 2 else 0)
        return create_success_response("b", "a", message.id, {"n": message.parameters["n"]})

    mediator.register_handler("b", echo)
    requests = [create_data_request("a", "b", "custom.echo", {"n": n}) for n in range(6)]

    responses = await asyncio.gather(*(mediator.send_request(r) for r in requests))

    assert [response.data["n"] for response in responses] == list(range(6))
    assert [response.request_id for response in responses] == [r.id for r in requests]


async def test_send_request_rejects_other_messages(mediator: Mediator):
    with pytest.raises(MessageValidationError):
        await mediator.send_request(create_notification("a", "*", "custom.event"))


async def test_request_validation(config: MediatorConfigModel):
    mediator = create_mediator(config.model_copy(update={"validate_messages": True}))
    handler = RecordingHandler(reply=respond_with({}))
    mediator.register_handler("notes-context", handler)

    invalid = await mediator.send_request(
        create_data_request("a", "notes-context", DataRequestType.NOTES_SEARCH, {"limit": 3})
    )
    valid = await mediator.send_request(
        create_data_request("a", "notes-context", DataRequestType.NOTES_SEARCH, {"query": "x"})
    )
    unknown = await mediator.send_request(
        create_data_request("a", "notes-context", "custom.query", {"anything": 1})
    )

    assert invalid.error.code == ErrorCode.VALIDATION_ERROR.value
    assert "query" in invalid.error.message
    assert valid.ok
    assert unknown.ok
    assert len(handler.received) == 2


# --- Notifications --- #


async def test_broadcast_reaches_registered_subscribers_only(mediator: Mediator):
    c1, c2, c3 = RecordingHandler(), RecordingHandler(), RecordingHandler()
    mediator.register_handler("c1", c1)
    mediator.register_handler("c2", c2)
    mediator.register_handler("c3", c3)
    mediator.subscribe("c1", "custom.event")
    mediator.subscribe("c2", "custom.event")
    mediator.subscribe("orphan", "custom.event")

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event", {"x": 1})
    )

    assert recipients == ["c1", "c2"]
    assert [m.target_context for m in c1.received] == ["c1"]
    assert [m.target_context for m in c2.received] == ["c2"]
    assert c1.received[0].payload == {"x": 1}
    assert c3.received == []


async def test_profile_updated_scenario(mediator: Mediator):
    context1, context2 = RecordingHandler(), RecordingHandler()
    mediator.register_handler("context1", context1)
    mediator.register_handler("context2", context2)
    mediator.subscribe("context1", NotificationType.PROFILE_UPDATED)
    mediator.subscribe("context2", NotificationType.PROFILE_UPDATED)

    await mediator.send_notification(
        create_notification(
            "profile-context", "*", NotificationType.PROFILE_UPDATED, {"profileId": "p1"}
        )
    )

    assert len(context1.received) == 1
    assert len(context2.received) == 1
    assert context1.received[0].notification_type == "profile.updated"
    assert mediator.get_subscribers("profile.updated") == ["context1", "context2"]


async def test_unsubscribed_context_is_skipped(mediator: Mediator):
    handler = RecordingHandler()
    mediator.register_handler("c1", handler)
    mediator.subscribe("c1", "custom.event")
    assert mediator.unsubscribe("c1", "custom.event") is True

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event")
    )

    assert recipients == []
    assert handler.received == []
    assert mediator.unsubscribe("c1", "custom.event") is False


async def test_subscriptions_survive_unregister(mediator: Mediator):
    mediator.register_handler("c1", RecordingHandler())
    mediator.subscribe("c1", "custom.event")
    mediator.unregister_handler("c1")

    assert mediator.get_subscriptions("c1") == ["custom.event"]
    assert await mediator.send_notification(
        create_notification("source", "*", "custom.event")
    ) == []

    handler = RecordingHandler()
    mediator.register_handler("c1", handler)
    await mediator.send_notification(create_notification("source", "*", "custom.event"))

    assert len(handler.received) == 1


async def test_targeted_notification_ignores_subscriptions(mediator: Mediator):
    handler = RecordingHandler()
    mediator.register_handler("c1", handler)

    assert await mediator.send_notification(
        create_notification("source", "c1", "custom.event")
    ) == ["c1"]
    assert await mediator.send_notification(
        create_notification("source", "ghost", "custom.event")
    ) == []
    assert len(handler.received) == 1


async def test_failing_subscriber_does_not_block_others(mediator: Mediator):
    healthy = RecordingHandler()
    mediator.register_handler("broken", RecordingHandler(error=ValueError("nope")))
    mediator.register_handler("healthy", healthy)
    mediator.subscribe("broken", "custom.event")
    mediator.subscribe("healthy", "custom.event")

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event")
    )

    assert recipients == ["healthy"]
    assert len(healthy.received) == 1


async def test_recipients_receive_independent_payloads(mediator: Mediator):
    def tamper(message):
        message.payload["tampered"] = True
        message.payload["nested"]["items"].append("extra")

    observer = RecordingHandler()
    mediator.register_handler("c1", tamper)
    mediator.register_handler("c2", observer)
    mediator.subscribe("c1", "custom.event")
    mediator.subscribe("c2", "custom.event")
    notification = create_notification(
        "source", "*", "custom.event", {"k": 1, "nested": {"items": ["a"]}}
    )

    await mediator.send_notification(notification)

    assert observer.received[0].payload == {"k": 1, "nested": {"items": ["a"]}}
    assert notification.payload == {"k": 1, "nested": {"items": ["a"]}}


async def test_handler_unregistering_peer_mid_broadcast(mediator: Mediator):
    late = RecordingHandler()

    def first(message):
        mediator.unregister_handler("c2")
        mediator.register_handler("c3", RecordingHandler())
        mediator.subscribe("c3", "custom.event")

    mediator.register_handler("c1", first)
    mediator.register_handler("c2", late)
    mediator.subscribe("c1", "custom.event")
    mediator.subscribe("c2", "custom.event")

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event")
    )

    assert recipients == ["c1"]
    assert late.received == []
    assert "c3" in mediator.get_registered_contexts()


async def test_handler_can_send_request_during_broadcast(mediator: Mediator):
    answers = []

    async def listener(message):
        response = await mediator.send_request(
            create_data_request("listener", "profile", DataRequestType.PROFILE_DATA)
        )
        answers.append(response.data)

    mediator.register_handler("profile", RecordingHandler(reply=respond_with({"name": "Ada"})))
    mediator.register_handler("listener", listener)
    mediator.subscribe("listener", NotificationType.PROFILE_UPDATED)

    await mediator.send_notification(
        create_notification("profile", "*", NotificationType.PROFILE_UPDATED)
    )

    assert answers == [{"name": "Ada"}]


async def test_send_notification_validates_payload(config: MediatorConfigModel):
    mediator = create_mediator(config.model_copy(update={"validate_messages": True}))
    mediator.register_handler("c1", RecordingHandler())
    mediator.subscribe("c1", NotificationType.NOTE_DELETED)

    with pytest.raises(MessageValidationError):
        await mediator.send_notification(
            create_notification("notes-context", "*", NotificationType.NOTE_DELETED, {})
        )

    assert await mediator.send_notification(
        create_notification(
            "notes-context", "*", NotificationType.NOTE_DELETED, {"noteId": "n1"}
        )
    ) == ["c1"]


async def test_send_notification_rejects_other_messages(mediator: Mediator):
    with pytest.raises(MessageValidationError):
        await mediator.send_notification(create_data_request("a", "b", "custom.query"))


# --- Acknowledgments --- #


def subscribe_all(mediator: Mediator, *context_ids: str, reply=None) -> dict:
    handlers = {}
    for context_id in context_ids:
        handlers[context_id] = RecordingHandler(reply=reply)
        mediator.register_handler(context_id, handlers[context_id])
        mediator.subscribe(context_id, "custom.event")
    return handlers


async def test_ack_barrier_waits_for_every_recipient(mediator: Mediator):
    subscribe_all(mediator, "c1", "c2", "c3")
    notification = create_notification("source", "*", "custom.event", requires_ack=True)

    task = asyncio.create_task(
        mediator.send_notification(notification, wait_for_acks=True)
    )
    await settle()

    for context_id in ("c3", "c2"):
        ack = create_acknowledgment(context_id, "source", notification.id)
        assert mediator.handle_acknowledgment(ack) is True
        await settle()
        assert not task.done()

    # Repeated acknowledgment while still pending.
    assert mediator.handle_acknowledgment(
        create_acknowledgment("c3", "source", notification.id)
    ) is True
    assert not task.done()

    assert mediator.handle_acknowledgment(
        create_acknowledgment("c1", "source", notification.id)
    ) is True

    assert sorted(await task) == ["c1", "c2", "c3"]
    assert mediator.pending_acknowledgment_count == 0
    assert mediator.handle_acknowledgment(
        create_acknowledgment("c1", "source", notification.id)
    ) is False


async def test_returned_acknowledgments_are_routed(mediator: Mediator):
    subscribe_all(mediator, "c1", "c2", reply=acknowledge)

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event", requires_ack=True),
        wait_for_acks=True,
    )

    assert recipients == ["c1", "c2"]
    assert mediator.pending_acknowledgment_count == 0


async def test_rejected_acknowledgments_are_left_out(mediator: Mediator):
    def reject(message):
        return create_acknowledgment(
            message.target_context,
            message.source_context,
            message.id,
            AckStatus.REJECTED,
            "cannot process",
        )

    mediator.register_handler("c1", reject)
    mediator.subscribe("c1", "custom.event")
    subscribe_all(mediator, "c2", reply=acknowledge)

    recipients = await mediator.send_notification(
        create_notification("source", "*", "custom.event", requires_ack=True),
        wait_for_acks=True,
    )

    assert recipients == ["c2"]
    assert mediator.pending_acknowledgment_count == 0


async def test_ack_timeout_reports_missing_recipients(mediator: Mediator):
    subscribe_all(mediator, "c1")
    subscribe_all(mediator, "c2", reply=acknowledge)

    with pytest.raises(AcknowledgmentTimeoutError) as excinfo:
        await mediator.send_notification(
            create_notification("source", "*", "custom.event", requires_ack=True),
            wait_for_acks=True,
            timeout=0.05,
        )

    assert excinfo.value.missing == ["c1"]
    assert excinfo.value.code == ErrorCode.TIMEOUT
    assert mediator.pending_acknowledgment_count == 0


async def test_fire_and_forget_ack_resolves_silently(mediator: Mediator):
    subscribe_all(mediator, "c1", "c2")
    notification = create_notification("source", "*", "custom.event", requires_ack=True)

    recipients = await mediator.send_notification(notification)
    await settle()

    assert recipients == ["c1", "c2"]
    assert mediator.pending_acknowledgment_count == 1
    for context_id in recipients:
        mediator.handle_acknowledgment(
            create_acknowledgment(context_id, "source", notification.id)
        )
    assert mediator.pending_acknowledgment_count == 0


async def test_handle_acknowledgment_rejects_other_messages(mediator: Mediator):
    with pytest.raises(MessageValidationError):
        mediator.handle_acknowledgment(create_notification("a", "*", "custom.event"))


async def test_unknown_acknowledgment(mediator: Mediator):
    assert mediator.handle_acknowledgment(
        create_acknowledgment("c1", "source", "never-sent")
    ) is False


# --- Timeout cleanup --- #


async def test_cleanup_purges_only_expired_entries(config: MediatorConfigModel, clock: FakeClock):
    mediator = create_mediator(config, clock=clock)
    mediator.register_handler("b", RecordingHandler())
    subscribe_all(mediator, "c1")

    old = asyncio.create_task(
        mediator.send_request(create_data_request("a", "b", "custom.query", timeout=10))
    )
    await settle()
    clock.advance(6)
    young = asyncio.create_task(
        mediator.send_request(create_data_request("a", "b", "custom.query", timeout=10))
    )
    notification = create_notification("source", "*", "custom.event", requires_ack=True)
    await mediator.send_notification(notification, timeout=3)
    await settle()

    assert mediator.cleanup_timed_out() == 0

    clock.advance(5)
    assert mediator.cleanup_timed_out() == 2

    response = await old
    assert response.error.code == ErrorCode.TIMEOUT.value
    assert not young.done()
    assert mediator.pending_request_count == 1
    assert mediator.pending_acknowledgment_count == 0
    assert mediator.handle_acknowledgment(
        create_acknowledgment("c1", "source", notification.id)
    ) is False

    young.cancel()
    with pytest.raises(asyncio.CancelledError):
        await young


async def test_sweep_enforces_request_timeouts(config: MediatorConfigModel):
    mediator = create_mediator(config.model_copy(update={"request_timeout": 0.05}))
    mediator.register_handler("b", RecordingHandler())

    async with mediator:
        assert mediator.is_sweeping
        response = await mediator.send_request(create_data_request("a", "b", "custom.query"))

    assert response.error.code == ErrorCode.TIMEOUT.value
    assert not mediator.is_sweeping


async def test_sweep_rejects_ack_barrier(config: MediatorConfigModel):
    mediator = create_mediator(config)
    subscribe_all(mediator, "c1")

    async with mediator:
        with pytest.raises(AcknowledgmentTimeoutError) as excinfo:
            await mediator.send_notification(
                create_notification("source", "*", "custom.event", requires_ack=True),
                wait_for_acks=True,
                timeout=0.05,
            )

    assert excinfo.value.missing == ["c1"]


async def test_start_and_stop_are_idempotent(mediator: Mediator):
    mediator.start()
    sweeper = mediator._sweeper
    mediator.start()
    assert mediator._sweeper is sweeper

    await mediator.stop()
    await mediator.stop()
    assert not mediator.is_sweeping


# --- Construction --- #


async def test_mediators_are_isolated(config: MediatorConfigModel):
    first = create_mediator(config, handlers={"b": respond_with({"from": "first"})})
    second = create_mediator(config)

    assert first.get_registered_contexts() == ["b"]
    assert second.get_registered_contexts() == []

    response = await second.send_request(create_data_request("a", "b", "custom.query"))
    assert response.error.code == ErrorCode.CONTEXT_NOT_FOUND.value
