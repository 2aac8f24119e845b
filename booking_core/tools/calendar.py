"""
Calendar policy: weekly operating hours plus date-scoped exceptions.

An exception always wins over the base schedule for its date. A full-day
exception closes the date; a ranged one closes only ``[start, end)`` and
leaves the rest of the day to the base schedule. At most one exception
exists per date, and adding another replaces it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from booking_core.errors import ErrorCode, OperationResult, ResourceNotFoundError
from booking_core.schemas.tenant_schema import DaySchedule, ScheduleException, Tenant, TimeRange
from booking_core.storage.repositories import Repositories
from booking_core.utils import intervals_overlap, parse_time, validate_iso_date, weekday_name

logger = logging.getLogger(__name__)

RangeInput = Union[TimeRange, tuple[str, str], None]


@dataclass(frozen=True)
class DayCalendar:
    """The tenant's effective calendar for one date."""

    date: str
    weekday: str
    tenant_active: bool
    schedule: DaySchedule
    exception: Optional[ScheduleException] = None

    @classmethod
    def build(cls, tenant: Tenant, date: str, exception: Optional[ScheduleException]) -> "DayCalendar":
        weekday = weekday_name(date)
        return cls(
            date=date,
            weekday=weekday,
            tenant_active=tenant.is_active,
            schedule=tenant.operating_hours.for_weekday(weekday),
            exception=exception,
        )

    @property
    def closed_all_day(self) -> bool:
        if not self.tenant_active or not self.schedule.is_open:
            return True
        return self.exception is not None and self.exception.is_full_day

    def base_covers(self, start: int, end: int) -> bool:
        """True when the base schedule is open for all of ``[start, end)``."""
        hours = self.schedule.hours
        if hours is None or start < hours.start_minutes or end > hours.end_minutes:
            return False
        pause = self.schedule.break_range
        return pause is None or not intervals_overlap(
            start, end, pause.start_minutes, pause.end_minutes
        )

    def exception_blocks(self, start: int, end: int) -> bool:
        if self.exception is None:
            return False
        if self.exception.is_full_day:
            return True
        blocked = self.exception.time_range
        return intervals_overlap(start, end, blocked.start_minutes, blocked.end_minutes)

    def is_open_at(self, minute: int) -> bool:
        if self.closed_all_day:
            return False
        return self.base_covers(minute, minute + 1) and not self.exception_blocks(minute, minute + 1)


def _to_range(time_range: RangeInput) -> Optional[TimeRange]:
    if time_range is None or isinstance(time_range, TimeRange):
        return time_range
    start, end = time_range
    return TimeRange(start_time=start, end_time=end)


class CalendarPolicy:
    """Answers "is the tenant open?" and manages schedule exceptions."""

    def __init__(self, repos: Repositories) -> None:
        self._repos = repos

    def day_calendar(self, tenant_id: str, date: str) -> DayCalendar:
        tenant = self._repos.tenants.get(tenant_id)
        if tenant is None:
            raise ResourceNotFoundError(f"Tenant {tenant_id} not found")
        date = validate_iso_date(date)
        return DayCalendar.build(tenant, date, self._repos.exceptions.get(tenant_id, date))

    def is_open(self, tenant_id: str, date: str, time: str) -> bool:
        return self.day_calendar(tenant_id, date).is_open_at(parse_time(time))

    def add_exception(
        self,
        tenant_id: str,
        date: str,
        time_range: RangeInput,
        reason: str,
    ) -> OperationResult[ScheduleException]:
        """Block a whole date (``time_range=None``) or part of it.

        Replaces any exception already recorded for the date.
        """
        if self._repos.tenants.get(tenant_id) is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Tenant {tenant_id} not found.")
        exception = ScheduleException(
            tenant_id=tenant_id,
            date=date,
            time_range=_to_range(time_range),
            reason=reason,
        )
        replaced = self._repos.exceptions.get(tenant_id, exception.date) is not None
        self._repos.exceptions.put(exception)
        logger.info(
            "Schedule exception %s for %s on %s (%s)",
            "replaced" if replaced else "added",
            tenant_id,
            exception.date,
            "full day" if exception.is_full_day else
            f"{exception.time_range.start_time}-{exception.time_range.end_time}",
        )
        return OperationResult.ok(exception)

    def remove_exception(self, tenant_id: str, date: str) -> OperationResult[bool]:
        removed = self._repos.exceptions.delete(tenant_id, validate_iso_date(date))
        if not removed:
            return OperationResult.fail(
                ErrorCode.NOT_FOUND, f"No schedule exception for {tenant_id} on {date}."
            )
        logger.info("Schedule exception removed for %s on %s", tenant_id, date)
        return OperationResult.ok(True)

    def get_exception(self, tenant_id: str, date: str) -> Optional[ScheduleException]:
        return self._repos.exceptions.get(tenant_id, validate_iso_date(date))

    def list_exceptions(self, tenant_id: str) -> list[ScheduleException]:
        return self._repos.exceptions.list_by_tenant(tenant_id)
