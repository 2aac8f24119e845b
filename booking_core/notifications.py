"""
Notification dispatch port.

The core only hands lifecycle events to a NotificationPort; delivering them
by email, SMS or anything else is the adapter's job. Delivery happens after
the transition is committed, so a failing adapter is logged and never undoes
a confirmation, rejection or cancellation.
"""

import logging
import threading
from typing import Optional, Protocol

from booking_core.config import AppConfig, settings
from booking_core.schemas.event_schema import EventType, NotificationEvent

logger = logging.getLogger(__name__)


class NotificationPort(Protocol):
    def send(self, event: NotificationEvent) -> None: ...


class LoggingNotifier:
    """Default adapter: writes each event to the log."""

    def send(self, event: NotificationEvent) -> None:
        logger.info(
            "Notify %s for tenant %s -> %s <%s>",
            event.event_type.value,
            event.tenant_id,
            event.customer.name,
            event.customer.email or event.customer.phone or "no contact",
        )


class OutboxNotifier:
    """Keeps every event in memory, in order. Handy for tests and demos."""

    def __init__(self) -> None:
        self._events: list[NotificationEvent] = []
        self._mutex = threading.Lock()

    def send(self, event: NotificationEvent) -> None:
        with self._mutex:
            self._events.append(event)

    @property
    def events(self) -> list[NotificationEvent]:
        with self._mutex:
            return list(self._events)

    def of_type(self, event_type: EventType) -> list[NotificationEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        with self._mutex:
            self._events.clear()


class NullNotifier:
    def send(self, event: NotificationEvent) -> None:
        return None


def dispatch(
    port: NotificationPort,
    event: NotificationEvent,
    config: Optional[AppConfig] = None,
) -> bool:
    """Send ``event`` through ``port``. Returns False when nothing was delivered."""
    config = config or settings
    if not config.notifications.enabled:
        logger.debug("Notifications disabled, dropping %s", event.event_type.value)
        return False
    try:
        port.send(event)
    except Exception:
        logger.exception(
            "Notification delivery failed: %s for tenant %s",
            event.event_type.value, event.tenant_id,
        )
        return False
    return True
