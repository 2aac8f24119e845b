"""Tests for notification dispatch adapters."""

from dataclasses import replace

from booking_core.config import AppConfig
from booking_core.notifications import LoggingNotifier, NullNotifier, OutboxNotifier, dispatch
from booking_core.schemas.customer_schema import CustomerInfo
from booking_core.schemas.event_schema import BookingCancelled, BookingConfirmed, EventType
from tests.conftest import make_booking


def _confirmed():
    booking = make_booking("10:00", 30)
    return BookingConfirmed(tenant_id="TEN-1", customer=booking.customer, booking=booking)


class _Broken:
    def send(self, event):
        raise RuntimeError("gateway timeout")


class TestDispatch:
    def test_delivers_to_port(self):
        outbox = OutboxNotifier()
        assert dispatch(outbox, _confirmed(), AppConfig())
        assert [e.event_type for e in outbox.events] == [EventType.BOOKING_CONFIRMED]

    def test_failure_is_logged_not_raised(self, caplog):
        assert dispatch(_Broken(), _confirmed(), AppConfig()) is False
        assert "Notification delivery failed" in caplog.text

    def test_disabled(self):
        base = AppConfig()
        config = replace(base, notifications=replace(base.notifications, enabled=False))
        outbox = OutboxNotifier()
        assert dispatch(outbox, _confirmed(), config) is False
        assert outbox.events == []

    def test_logging_notifier(self, caplog):
        caplog.set_level("INFO", logger="booking_core.notifications")
        LoggingNotifier().send(_confirmed())
        assert "booking_confirmed" in caplog.text

    def test_null_notifier(self):
        assert NullNotifier().send(_confirmed()) is None


class TestOutbox:
    def test_filters_by_type(self):
        outbox = OutboxNotifier()
        booking = make_booking("10:00", 30)
        outbox.send(_confirmed())
        outbox.send(BookingCancelled(
            tenant_id="TEN-1", customer=CustomerInfo(name="x"), booking=booking,
        ))
        assert len(outbox.of_type(EventType.BOOKING_CANCELLED)) == 1
        outbox.clear()
        assert outbox.events == []

    def test_event_carries_snapshot(self):
        event = _confirmed()
        assert event.booking.start_time == "10:00"
        assert event.occurred_at.tzinfo is not None
