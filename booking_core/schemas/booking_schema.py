"""Services, providers, booking requests and committed bookings."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_core.schemas.customer_schema import CustomerInfo
from booking_core.schemas.tenant_schema import TimeRange
from booking_core.schemas.types import ClockTime, IsoDate
from booking_core.utils import WEEKDAYS, parse_time


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DurationType(str, Enum):
    FIXED = "fixed"
    FLEXIBLE = "flexible"


class RequestStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ServiceSpec(BaseModel):
    """Caller-supplied definition of a new service, validated by the catalog."""
    name: str
    duration_type: DurationType
    fixed_duration_minutes: Optional[int] = None


class Service(BaseModel):
    """A bookable offering of a tenant."""
    id: str
    tenant_id: str
    name: str
    duration_type: DurationType
    fixed_duration_minutes: Optional[int] = None
    is_active: bool = True

    @property
    def requires_manual_confirmation(self) -> bool:
        return self.duration_type == DurationType.FLEXIBLE


class Provider(BaseModel):
    """A staff member whose time is booked."""
    id: str
    tenant_id: str
    name: str
    is_active: bool = True
    working_days: set[str] = Field(default_factory=set)
    working_hours: TimeRange

    @field_validator("working_days")
    @classmethod
    def _check_days(cls, value: set[str]) -> set[str]:
        days = {day.strip().lower() for day in value}
        unknown = days - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekdays: {sorted(unknown)}")
        return days

    def works_on(self, weekday: str) -> bool:
        return self.is_active and weekday in self.working_days


class StatusChange(BaseModel):
    """One entry of a request's or booking's status history."""
    status: str
    changed_at: datetime = Field(default_factory=_utcnow)
    actor_id: Optional[str] = None
    note: Optional[str] = None


class BookingRequest(BaseModel):
    """Customer intent awaiting an operator decision."""
    id: str
    tenant_id: str
    service_id: str
    desired_date: IsoDate
    preferred_window: str = ""
    customer: CustomerInfo
    status: RequestStatus = RequestStatus.PENDING
    booking_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    history: list[StatusChange] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status != RequestStatus.PENDING


class Booking(BaseModel):
    """A time-exact commitment of one provider."""
    id: str
    request_id: Optional[str] = None
    tenant_id: str
    service_id: str
    provider_id: str
    customer: CustomerInfo
    date: IsoDate
    start_time: ClockTime
    end_time: ClockTime
    duration_minutes: int = Field(gt=0)
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime = Field(default_factory=_utcnow)
    history: list[StatusChange] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_end_time(self) -> "Booking":
        expected = parse_time(self.start_time) + self.duration_minutes
        if parse_time(self.end_time) != expected:
            raise ValueError(
                f"end_time {self.end_time} does not match "
                f"start_time {self.start_time} + {self.duration_minutes} minutes"
            )
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.CONFIRMED


class BookingSummary(BaseModel):
    """Per-tenant counts for the analytics view."""
    tenant_id: str
    requests_by_status: dict[str, int] = Field(default_factory=dict)
    bookings_by_status: dict[str, int] = Field(default_factory=dict)
    bookings_by_provider: dict[str, int] = Field(default_factory=dict)
    booked_minutes: int = 0
