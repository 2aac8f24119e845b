"""Outbound notification events emitted on booking lifecycle transitions."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from booking_core.schemas.booking_schema import Booking, BookingRequest
from booking_core.schemas.customer_schema import CustomerInfo


class EventType(str, Enum):
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_RESCHEDULED = "booking_rescheduled"


class NotificationEvent(BaseModel):
    """Common envelope: who to tell, about which tenant, and a snapshot."""

    event_type: EventType
    tenant_id: str
    customer: CustomerInfo
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    booking: Optional[Booking] = None
    request: Optional[BookingRequest] = None


class BookingConfirmed(NotificationEvent):
    event_type: EventType = EventType.BOOKING_CONFIRMED
    booking: Booking


class BookingRejected(NotificationEvent):
    event_type: EventType = EventType.BOOKING_REJECTED
    request: BookingRequest
    reason: str = ""


class BookingCancelled(NotificationEvent):
    event_type: EventType = EventType.BOOKING_CANCELLED
    booking: Booking


class BookingRescheduled(NotificationEvent):
    event_type: EventType = EventType.BOOKING_RESCHEDULED
    booking: Booking
    previous_date: str
    previous_start_time: str
