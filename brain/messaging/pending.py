# brain/messaging/pending.py

"""
Pending tables.

In-memory maps of operations awaiting asynchronous resolution. Each entry owns
the future its caller awaits plus the deadline after which the timeout sweep
may purge it.
"""

from __future__ import annotations

from asyncio import Future
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from brain.messaging.exceptions import DuplicatePendingEntryError
from brain.messaging.models import AckStatus, DataResponseMessage


@dataclass
class PendingEntry:
    """Common bookkeeping for anything waiting on the mediator."""

    future: Future
    started: float
    timeout: float | None

    def age(self, now: float) -> float:
        return now - self.started

    def is_expired(self, now: float) -> bool:
        return self.timeout is not None and self.age(now) > self.timeout

    def settle(self, result: object) -> bool:
        """Resolve the future unless it already settled. Returns True if it did."""
        if self.future.done():
            return False
        self.future.set_result(result)
        return True

    def fail(self, error: BaseException) -> bool:
        """Reject the future unless it already settled. Returns True if it did."""
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


@dataclass
class PendingRequest(PendingEntry):
    """
    Tracks an outgoing request and the future its caller awaits.
    Resolved by a matching response or purged by timeout.
    """

    request_id: str = ""
    source_context: str = ""
    target_context: str = ""

    def resolve(self, response: DataResponseMessage) -> bool:
        return self.settle(response)


@dataclass
class PendingAcknowledgment(PendingEntry):
    """
    Tracks a notification waiting for acknowledgments from every recipient.
    The future resolves with the context id → status map of `acknowledged`
    once `target_contexts` is empty.
    """

    notification_id: str = ""
    source_context: str = ""
    target_contexts: set[str] = field(default_factory=set)
    acknowledged: dict[str, AckStatus] = field(default_factory=dict)

    def acknowledge(self, context_id: str, status: AckStatus) -> bool:
        """
        Record an acknowledgment from `context_id`.

        Returns:
            True if this acknowledgment completed the barrier.
        """
        if context_id in self.target_contexts:
            self.target_contexts.discard(context_id)
            self.acknowledged[context_id] = status
        return not self.target_contexts

    @property
    def missing(self) -> list[str]:
        return sorted(self.target_contexts)


EntryT = TypeVar("EntryT", bound=PendingEntry)


class PendingTable(Generic[EntryT]):
    """
    Message id → pending entry.

    All iteration goes through snapshots so entries can be added or removed
    while a sweep is running.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[str, EntryT] = {}

    def add(self, message_id: str, entry: EntryT) -> EntryT:
        if message_id in self._entries:
            raise DuplicatePendingEntryError(message_id)
        self._entries[message_id] = entry
        return entry

    def get(self, message_id: str) -> EntryT | None:
        return self._entries.get(message_id)

    def pop(self, message_id: str) -> EntryT | None:
        return self._entries.pop(message_id, None)

    def expired(self, now: float) -> list[tuple[str, EntryT]]:
        """Snapshot of the entries older than their timeout at `now`."""
        return [
            (message_id, entry)
            for message_id, entry in list(self._entries.items())
            if entry.is_expired(now)
        ]

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
