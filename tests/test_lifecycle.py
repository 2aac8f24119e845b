"""Tests for the request and booking lifecycle tables."""

import pytest

from booking_core.booking.lifecycle import (
    BOOKING_LIFECYCLE,
    REQUEST_LIFECYCLE,
    BookingTrigger,
    RequestTrigger,
)
from booking_core.errors import InvalidTransitionError
from booking_core.schemas.booking_schema import BookingStatus, RequestStatus


class TestRequestLifecycle:
    def test_confirm_from_pending(self):
        assert REQUEST_LIFECYCLE.advance(RequestStatus.PENDING, RequestTrigger.CONFIRM) == (
            RequestStatus.CONFIRMED
        )

    def test_reject_from_pending(self):
        assert REQUEST_LIFECYCLE.advance(RequestStatus.PENDING, RequestTrigger.REJECT) == (
            RequestStatus.REJECTED
        )

    @pytest.mark.parametrize("status", [RequestStatus.CONFIRMED, RequestStatus.REJECTED])
    @pytest.mark.parametrize("trigger", list(RequestTrigger))
    def test_decided_requests_are_final(self, status, trigger):
        with pytest.raises(InvalidTransitionError):
            REQUEST_LIFECYCLE.advance(status, trigger)

    def test_terminal_states(self):
        assert not REQUEST_LIFECYCLE.is_terminal(RequestStatus.PENDING)
        assert REQUEST_LIFECYCLE.is_terminal(RequestStatus.CONFIRMED)
        assert REQUEST_LIFECYCLE.is_terminal(RequestStatus.REJECTED)

    def test_error_lists_valid_triggers(self):
        with pytest.raises(InvalidTransitionError, match=r"Valid triggers: \[\]"):
            REQUEST_LIFECYCLE.advance(RequestStatus.REJECTED, RequestTrigger.CONFIRM)

    def test_valid_triggers_from_pending(self):
        assert set(REQUEST_LIFECYCLE.valid_triggers(RequestStatus.PENDING)) == set(RequestTrigger)


class TestBookingLifecycle:
    def test_cancel(self):
        assert BOOKING_LIFECYCLE.advance(BookingStatus.CONFIRMED, BookingTrigger.CANCEL) == (
            BookingStatus.CANCELLED
        )

    def test_reschedule_keeps_confirmed(self):
        assert BOOKING_LIFECYCLE.advance(BookingStatus.CONFIRMED, BookingTrigger.RESCHEDULE) == (
            BookingStatus.CONFIRMED
        )

    @pytest.mark.parametrize("trigger", list(BookingTrigger))
    def test_cancelled_is_final(self, trigger):
        with pytest.raises(InvalidTransitionError):
            BOOKING_LIFECYCLE.advance(BookingStatus.CANCELLED, trigger)
        assert BOOKING_LIFECYCLE.is_terminal(BookingStatus.CANCELLED)
