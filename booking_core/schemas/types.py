"""Annotated string types for the plain-data boundary (ISO dates, HH:MM times)."""

from typing import Annotated

from pydantic import AfterValidator

from booking_core.utils import validate_hhmm, validate_iso_date

IsoDate = Annotated[str, AfterValidator(validate_iso_date)]
ClockTime = Annotated[str, AfterValidator(validate_hhmm)]
