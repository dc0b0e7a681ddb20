"""Event emitters for the reconciliation engine."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from app_controller.core.events_model import ApplicationEvent

logger = logging.getLogger(__name__)


ALLOWED_EVENTS = {
    "application.phase_changed",
    "application.infrastructure_provisioned",
    "application.workload_updated",
}


class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, events: Iterable[ApplicationEvent]) -> None:
        """Emit one or more events."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Logs events and keeps them in memory for inspection."""

    def __init__(self):
        self.events = []

    def emit(self, events: Iterable[ApplicationEvent]) -> None:
        for event in events:
            if event.event_type not in ALLOWED_EVENTS:
                raise ValueError(f"Invalid event type: {event.event_type}")
            if not event.record:
                raise ValueError("Event must have a record")

            self.events.append(event)

            logger.info(f"[event] {event.event_type} | record={event.record} | {event.metadata}")


class MultiEventEmitter:
    """Fan-out to multiple emitters."""

    def __init__(self, emitters: Iterable[EventEmitter]):
        self._emitters = list(emitters)

    def emit(self, events: Iterable[ApplicationEvent]):
        """Emit to all emitters."""
        events = list(events)
        for emitter in self._emitters:
            emitter.emit(events)


class NullEventEmitter(EventEmitter):
    """No-op emitter (used when events are not needed)."""

    def emit(self, events: Iterable[ApplicationEvent]) -> None:
        """Do nothing."""
        pass
