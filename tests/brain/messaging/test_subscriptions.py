import pytest

from brain.messaging.subscriptions import SubscriptionRegistry


@pytest.fixture
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry()


def test_subscribe_is_idempotent(registry: SubscriptionRegistry):
    registry.subscribe("notes-context", "profile.updated")
    registry.subscribe("notes-context", "profile.updated")

    assert registry.subscribers("profile.updated") == ["notes-context"]
    assert registry.subscriptions("notes-context") == ["profile.updated"]


def test_many_to_many(registry: SubscriptionRegistry):
    registry.subscribe("notes-context", "profile.updated")
    registry.subscribe("website-context", "profile.updated")
    registry.subscribe("website-context", "notes.created")

    assert registry.subscribers("profile.updated") == [
        "notes-context",
        "website-context",
    ]
    assert registry.subscriptions("website-context") == [
        "notes.created",
        "profile.updated",
    ]
    assert registry.is_subscribed("website-context", "notes.created")
    assert not registry.is_subscribed("notes-context", "notes.created")


def test_unknown_lookups_are_empty(registry: SubscriptionRegistry):
    assert registry.subscribers("nothing.here") == []
    assert registry.subscriptions("nobody") == []


def test_unsubscribe_removes_only_that_pair(registry: SubscriptionRegistry):
    registry.subscribe("notes-context", "profile.updated")
    registry.subscribe("notes-context", "notes.created")

    assert registry.unsubscribe("notes-context", "profile.updated") is True

    assert registry.subscribers("profile.updated") == []
    assert registry.subscriptions("notes-context") == ["notes.created"]


def test_unsubscribe_missing_pair_is_a_no_op(registry: SubscriptionRegistry):
    registry.subscribe("notes-context", "profile.updated")

    assert registry.unsubscribe("notes-context", "notes.created") is False
    assert registry.unsubscribe("website-context", "profile.updated") is False
    assert registry.subscribers("profile.updated") == ["notes-context"]

