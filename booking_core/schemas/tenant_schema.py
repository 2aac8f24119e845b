"""Tenant, weekly operating hours and date-scoped schedule exceptions."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from booking_core.schemas.types import ClockTime, IsoDate
from booking_core.utils import WEEKDAYS, parse_time


class TimeRange(BaseModel):
    """A half-open ``[start_time, end_time)`` range within one day."""

    start_time: ClockTime
    end_time: ClockTime

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError(
                f"start_time {self.start_time} must be before end_time {self.end_time}"
            )
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.end_time)

    def contains(self, minute: int) -> bool:
        return self.start_minutes <= minute < self.end_minutes


class DaySchedule(BaseModel):
    """Operating hours for a single weekday, with an optional break."""

    is_open: bool = False
    open_time: Optional[ClockTime] = None
    close_time: Optional[ClockTime] = None
    break_start: Optional[ClockTime] = None
    break_end: Optional[ClockTime] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "DaySchedule":
        if not self.is_open:
            return self
        if self.open_time is None or self.close_time is None:
            raise ValueError("An open day needs both open_time and close_time")
        if parse_time(self.open_time) >= parse_time(self.close_time):
            raise ValueError("open_time must be before close_time")
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("break_start and break_end must be set together")
        if self.break_start is not None:
            start, end = parse_time(self.break_start), parse_time(self.break_end)
            if not parse_time(self.open_time) <= start < end <= parse_time(self.close_time):
                raise ValueError("Break must fall inside opening hours")
        return self

    @property
    def hours(self) -> Optional[TimeRange]:
        if not self.is_open:
            return None
        return TimeRange(start_time=self.open_time, end_time=self.close_time)

    @property
    def break_range(self) -> Optional[TimeRange]:
        if not self.is_open or self.break_start is None:
            return None
        return TimeRange(start_time=self.break_start, end_time=self.break_end)


class WeeklySchedule(BaseModel):
    """Base operating hours, one DaySchedule per weekday."""

    monday: DaySchedule = Field(default_factory=DaySchedule)
    tuesday: DaySchedule = Field(default_factory=DaySchedule)
    wednesday: DaySchedule = Field(default_factory=DaySchedule)
    thursday: DaySchedule = Field(default_factory=DaySchedule)
    friday: DaySchedule = Field(default_factory=DaySchedule)
    saturday: DaySchedule = Field(default_factory=DaySchedule)
    sunday: DaySchedule = Field(default_factory=DaySchedule)

    @classmethod
    def uniform(
        cls,
        days: list[str],
        open_time: str,
        close_time: str,
        break_start: Optional[str] = None,
        break_end: Optional[str] = None,
    ) -> "WeeklySchedule":
        """Build a schedule with identical hours on the given weekdays."""
        unknown = set(days) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekdays: {sorted(unknown)}")
        day = DaySchedule(
            is_open=True,
            open_time=open_time,
            close_time=close_time,
            break_start=break_start,
            break_end=break_end,
        )
        return cls(**{name: day for name in days})

    def for_weekday(self, weekday: str) -> DaySchedule:
        return getattr(self, weekday)


class ScheduleException(BaseModel):
    """A date-scoped override: a full-day block or a partial-day block."""

    tenant_id: str
    date: IsoDate
    time_range: Optional[TimeRange] = None
    reason: str = ""

    @property
    def is_full_day(self) -> bool:
        return self.time_range is None


class Tenant(BaseModel):
    """A managed business and its base calendar."""

    id: str
    name: str
    owner_principal_id: str
    is_active: bool = True
    operating_hours: WeeklySchedule = Field(default_factory=WeeklySchedule)
