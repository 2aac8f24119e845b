"""
Availability engine: free/busy for one tenant, provider and date.

Composes the tenant's calendar policy, the provider's working hours and the
provider's confirmed bookings into a single verdict for a proposed interval,
and enumerates open start times on top of that verdict.

Every query first takes a DaySnapshot of stored state, then evaluates purely
against it, so the same inputs against the same state always give the same
answer and slot enumeration never sees a half-updated day.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Iterator, Optional

from booking_core.config import AppConfig, settings
from booking_core.errors import ResourceNotFoundError
from booking_core.schemas.booking_schema import Booking, Provider
from booking_core.storage.repositories import Repositories
from booking_core.tools.calendar import DayCalendar
from booking_core.utils import (
    format_time,
    intervals_overlap,
    parse_date,
    parse_time,
    validate_iso_date,
)

logger = logging.getLogger(__name__)


class ConflictReason(str, Enum):
    """Why a slot is rejected. Declaration order is the reporting priority."""

    CLOSED_DAY = "closed_day"
    OUTSIDE_PROVIDER_HOURS = "outside_provider_hours"
    SCHEDULE_EXCEPTION = "schedule_exception"
    BOOKING_OVERLAP = "booking_overlap"


@dataclass(frozen=True)
class Conflict:
    reason: ConflictReason
    message: str
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class DaySnapshot:
    """Everything needed to judge slots for one provider on one date."""

    calendar: DayCalendar
    provider: Provider
    bookings: tuple[Booking, ...]
    buffer_minutes: int = 0

    def window(self) -> Optional[tuple[int, int]]:
        """Bookable window: tenant hours intersected with provider hours."""
        hours = self.calendar.schedule.hours
        if self.calendar.closed_all_day or hours is None:
            return None
        if not self.provider.works_on(self.calendar.weekday):
            return None
        start = max(hours.start_minutes, self.provider.working_hours.start_minutes)
        end = min(hours.end_minutes, self.provider.working_hours.end_minutes)
        return (start, end) if start < end else None

    def conflict_for(
        self,
        start: int,
        duration: int,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Conflict]:
        """First reason ``[start, start + duration)`` cannot be booked, or None."""
        end = start + duration
        calendar = self.calendar

        if calendar.closed_all_day:
            reason = "tenant is closed"
            if calendar.exception is not None and calendar.exception.is_full_day:
                reason = calendar.exception.reason or "date is blocked"
            return Conflict(ConflictReason.CLOSED_DAY, f"{calendar.date}: {reason}.")
        if not calendar.base_covers(start, end):
            return Conflict(
                ConflictReason.CLOSED_DAY,
                f"{calendar.date} {_span(start, end)} falls outside operating hours.",
            )

        hours = self.provider.working_hours
        if (
            not self.provider.works_on(calendar.weekday)
            or start < hours.start_minutes
            or end > hours.end_minutes
        ):
            return Conflict(
                ConflictReason.OUTSIDE_PROVIDER_HOURS,
                f"{self.provider.name} is not working {calendar.weekday} {_span(start, end)}.",
            )

        if calendar.exception_blocks(start, end):
            return Conflict(
                ConflictReason.SCHEDULE_EXCEPTION,
                f"{_span(start, end)} is blocked: {calendar.exception.reason or 'unavailable'}.",
            )

        for booking in self.bookings:
            if booking.id == exclude_booking_id:
                continue
            if intervals_overlap(
                start,
                end,
                booking.start_minutes - self.buffer_minutes,
                booking.end_minutes + self.buffer_minutes,
            ):
                return Conflict(
                    ConflictReason.BOOKING_OVERLAP,
                    f"{_span(start, end)} overlaps booking "
                    f"{booking.start_time}-{booking.end_time}.",
                    booking_id=booking.id,
                )
        return None

    def open_slots(self, duration: int, granularity: int) -> Iterator[str]:
        window = self.window()
        if window is None:
            return
        start, end = window
        candidate = start
        while candidate + duration <= end:
            if self.conflict_for(candidate, duration) is None:
                yield format_time(candidate)
            candidate += granularity


def _span(start: int, end: int) -> str:
    if end > 24 * 60:
        return f"{format_time(start)}+{end - start}min"
    return f"{format_time(start)}-{format_time(end)}"


def _check_positive(name: str, value: int) -> None:
    if value is None or value <= 0:
        raise ValueError(f"{name} must be a positive number of minutes, got {value!r}")


class AvailabilityEngine:
    """Validates proposed slots and lists open ones."""

    def __init__(self, repos: Repositories, config: Optional[AppConfig] = None) -> None:
        self._repos = repos
        self._config = config or settings

    def snapshot(self, tenant_id: str, provider_id: str, date: str) -> DaySnapshot:
        """Read the stored state relevant to one provider-day.

        Raises:
            ResourceNotFoundError: Unknown tenant, or provider not of that tenant.
        """
        date = validate_iso_date(date)
        tenant = self._repos.tenants.get(tenant_id)
        if tenant is None:
            raise ResourceNotFoundError(f"Tenant {tenant_id} not found")
        provider = self._repos.providers.get(provider_id)
        if provider is None or provider.tenant_id != tenant_id:
            raise ResourceNotFoundError(f"Provider {provider_id} not found for {tenant_id}")
        bookings = tuple(
            b for b in self._repos.bookings.list_for_provider(tenant_id, provider_id, date)
            if b.is_active
        )
        return DaySnapshot(
            calendar=DayCalendar.build(tenant, date, self._repos.exceptions.get(tenant_id, date)),
            provider=provider,
            bookings=bookings,
            buffer_minutes=self._config.availability.booking_buffer_minutes,
        )

    def find_conflict(
        self,
        tenant_id: str,
        provider_id: str,
        date: str,
        start_time: str,
        duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Conflict]:
        """Return the first conflict for the proposed slot, or None if bookable.

        ``exclude_booking_id`` ignores one existing booking, used when a
        booking is moved and must not collide with its own old interval.

        Raises:
            ResourceNotFoundError: Unknown tenant, or provider not of that tenant.
            ValueError: Malformed date or time, or a non-positive duration.
        """
        _check_positive("duration_minutes", duration_minutes)
        start = parse_time(start_time)
        snapshot = self.snapshot(tenant_id, provider_id, date)
        conflict = snapshot.conflict_for(start, duration_minutes, exclude_booking_id)
        if conflict is not None:
            logger.debug(
                "Conflict for %s/%s %s %s (%d min): %s",
                tenant_id, provider_id, date, start_time, duration_minutes,
                conflict.reason.value,
            )
        return conflict

    def list_open_slots(
        self,
        tenant_id: str,
        provider_id: str,
        date: str,
        duration_minutes: int,
        granularity_minutes: Optional[int] = None,
    ) -> Iterator[str]:
        """Lazily yield bookable HH:MM start times across the provider's window.

        Inputs are validated and state is read immediately; the returned
        iterator only walks the snapshot. Call again for a fresh sequence.

        Raises:
            ResourceNotFoundError: Unknown tenant, or provider not of that tenant.
            ValueError: Malformed date, or a non-positive duration or granularity.
        """
        granularity = granularity_minutes
        if granularity is None:
            granularity = self._config.availability.slot_granularity_minutes
        _check_positive("duration_minutes", duration_minutes)
        _check_positive("granularity_minutes", granularity)
        snapshot = self.snapshot(tenant_id, provider_id, date)
        return snapshot.open_slots(duration_minutes, granularity)

    def next_available_slot(
        self,
        tenant_id: str,
        provider_id: str,
        duration_minutes: int,
        start_date: str,
        max_days: Optional[int] = None,
    ) -> Optional[tuple[str, str]]:
        """First open ``(date, start_time)`` on or after ``start_date``.

        Raises the same errors as ``list_open_slots``.
        """
        horizon = max_days or self._config.availability.max_search_days
        first = parse_date(start_date)
        for offset in range(horizon):
            day = (first + timedelta(days=offset)).isoformat()
            for slot in self.list_open_slots(tenant_id, provider_id, day, duration_minutes):
                return day, slot
        logger.info(
            "No availability for %s/%s within %d days of %s",
            tenant_id, provider_id, horizon, start_date,
        )
        return None
