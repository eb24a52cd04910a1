"""In-process event bus for lifecycle and cache events.

Publishers never wait on or fail because of a listener: listener errors are
logged and dropped. Listeners that do I/O schedule their own background work.

Events describing a database write are queued on the session with
``publish_on_commit`` and only reach the bus once that transaction commits;
a rollback discards them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from vacations.common.constants import EventName

logger = logging.getLogger(__name__)

Listener = Callable[[EventName, dict[str, Any]], None]

_PENDING_EVENTS_KEY = "vacations.pending_events"


class EventBus:
    """Minimal synchronous publish/subscribe registry."""

    def __init__(self) -> None:
        self._listeners: dict[EventName, list[Listener]] = defaultdict(list)

    def subscribe(self, event: EventName, listener: Listener) -> None:
        if listener not in self._listeners[event]:
            self._listeners[event].append(listener)

    def unsubscribe(self, event: EventName, listener: Listener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def clear(self) -> None:
        self._listeners.clear()

    def publish(self, event: EventName, payload: dict[str, Any]) -> None:
        logger.debug("Event %s: %s", event.value, payload)
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(event, payload)
            except Exception:
                logger.exception(
                    "Listener %r failed for event %s", listener, event.value,
                )


event_bus = EventBus()


# ── Transaction-bound publishing ────────────────────────────────────

def publish_on_commit(db: AsyncSession, event: EventName, payload: dict[str, Any]) -> None:
    """Queue *event* on *db*; it is published after the session commits."""
    db.sync_session.info.setdefault(_PENDING_EVENTS_KEY, []).append((event, payload))


@sa_event.listens_for(Session, "after_commit")
def _publish_pending(session: Session) -> None:
    for event, payload in session.info.pop(_PENDING_EVENTS_KEY, []):
        event_bus.publish(event, payload)


@sa_event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    dropped = session.info.pop(_PENDING_EVENTS_KEY, None)
    if dropped:
        logger.info("Discarded %d events of a rolled back transaction", len(dropped))
