# brain/messaging/subscriptions.py

"""
This module contains the subscription registry for the context mediator.
"""

from brain.logger import get_logger

log = get_logger(__name__)


class SubscriptionRegistry:
    """
    Many-to-many map between notification types and subscribed context ids.

    Internal Structure:
        _by_type: Maps notification_type (str) to the set of subscribed context ids.
        _by_context: Maps context_id (str) to the set of notification types it follows.
    Subscriptions are independent of handler registration.
    """

    def __init__(self) -> None:
        self._by_type: dict[str, set[str]] = {}
        self._by_context: dict[str, set[str]] = {}

    def subscribe(self, context_id: str, notification_type: str) -> None:
        self._by_type.setdefault(notification_type, set()).add(context_id)
        self._by_context.setdefault(context_id, set()).add(notification_type)
        log.debug(f"Context {context_id} subscribed to {notification_type}")

        if __debug__:
            self._assert_consistency()

    def unsubscribe(self, context_id: str, notification_type: str) -> bool:
        """
        Remove a single subscription.

        Returns:
            True if the subscription existed, otherwise False.
        """
        subscribers = self._by_type.get(notification_type)
        if not subscribers or context_id not in subscribers:
            return False

        subscribers.discard(context_id)
        if not subscribers:
            self._by_type.pop(notification_type, None)

        types = self._by_context.get(context_id)
        if types is not None:
            types.discard(notification_type)
            if not types:
                self._by_context.pop(context_id, None)

        log.debug(f"Context {context_id} unsubscribed from {notification_type}")

        if __debug__:
            self._assert_consistency()
        return True

    def subscribers(self, notification_type: str) -> list[str]:
        return sorted(self._by_type.get(notification_type, ()))

    def subscriptions(self, context_id: str) -> list[str]:
        return sorted(self._by_context.get(context_id, ()))

    def is_subscribed(self, context_id: str, notification_type: str) -> bool:
        return context_id in self._by_type.get(notification_type, ())

    def _assert_consistency(self) -> None:
        """
        Debug assertion to validate forward/reverse mapping consistency.
        """
        for notification_type, context_ids in self._by_type.items():
            assert context_ids, f"Empty subscriber set left for {notification_type}"
            for context_id in context_ids:
                assert notification_type in self._by_context.get(context_id, ()), (
                    f"{context_id} in _by_type[{notification_type}] but not in _by_context"
                )

        for context_id, notification_types in self._by_context.items():
            assert notification_types, f"Empty subscription set left for {context_id}"
            for notification_type in notification_types:
                assert context_id in self._by_type.get(notification_type, ()), (
                    f"{notification_type} in _by_context[{context_id}] but not in _by_type"
                )
