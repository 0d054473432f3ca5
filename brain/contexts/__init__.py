from brain.contexts.base import ContextId, ContextMessaging

__all__ = (
    "ContextId",
    "ContextMessaging",
)
