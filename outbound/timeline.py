"""Status timelines built from normalized status events.

Status is stored as an append-only event log rather than a single mutable
field. Readers order events by event timestamp, so callbacks that arrive out
of order or more than once still produce the same timeline.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol

from outbound.types import NormalizedStatus, StatusEvent


class StatusEventSink(Protocol):
    """Receives normalized status events for persistence or notification."""

    def append(self, event: StatusEvent) -> bool:
        """Store an event. Returns False if it duplicates one already stored."""
        ...


class StatusTimeline:
    """In-memory event log keyed by internal message id.

    An event duplicates another when it has the same carrier message id,
    status and event type; only the one with the earliest timestamp is kept.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, list[tuple[int, StatusEvent]]] = defaultdict(list)
        self._seq = 0

    def append(self, event: StatusEvent) -> bool:
        with self._lock:
            entries = self._events[event.message_id]
            for idx, (seq, existing) in enumerate(entries):
                if _same_event(existing, event):
                    if event.timestamp < existing.timestamp:
                        entries[idx] = (seq, event)
                    return False
            self._seq += 1
            entries.append((self._seq, event))
            return True

    def for_message(self, message_id: str) -> list[StatusEvent]:
        """Events for ``message_id`` sorted by timestamp, ties by arrival."""
        with self._lock:
            entries = list(self._events.get(message_id, ()))
        entries.sort(key=lambda entry: (entry[1].timestamp, entry[0]))
        return [event for _, event in entries]

    def latest(self, message_id: str) -> StatusEvent | None:
        events = self.for_message(message_id)
        return events[-1] if events else None

    def current_status(self, message_id: str) -> NormalizedStatus | None:
        latest = self.latest(message_id)
        return latest.status if latest else None


def _same_event(a: StatusEvent, b: StatusEvent) -> bool:
    return (
        a.carrier_message_id == b.carrier_message_id
        and a.status == b.status
        and a.event_type == b.event_type
    )
