"""Customer contact details captured on submission."""

from typing import Optional

from pydantic import BaseModel, field_validator

from booking_core.utils import normalize_phone


class CustomerInfo(BaseModel):
    """Who asked for the booking and how to reach them."""
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_phone(value) or None
