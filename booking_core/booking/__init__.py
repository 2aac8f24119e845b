from booking_core.booking.lifecycle import (
    BOOKING_LIFECYCLE,
    REQUEST_LIFECYCLE,
    BookingTrigger,
    RequestTrigger,
)
from booking_core.booking.workflow import BookingWorkflow

__all__ = [
    "BookingWorkflow",
    "REQUEST_LIFECYCLE",
    "BOOKING_LIFECYCLE",
    "RequestTrigger",
    "BookingTrigger",
]
