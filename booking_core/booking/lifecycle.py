"""
Lifecycle tables for booking requests and bookings.

Every status change must match an explicit transition. Anything else,
including a second decision on a request that is already final, raises
InvalidTransitionError listing the triggers that would have been valid.

Usage:
    new_status = REQUEST_LIFECYCLE.advance(RequestStatus.PENDING, RequestTrigger.CONFIRM)
    assert new_status == RequestStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from booking_core.errors import InvalidTransitionError
from booking_core.schemas.booking_schema import BookingStatus, RequestStatus

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)
T = TypeVar("T", bound=Enum)


class RequestTrigger(str, Enum):
    CONFIRM = "confirm"
    REJECT = "reject"


class BookingTrigger(str, Enum):
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class Transition(Generic[S, T]):
    """A single valid status transition."""
    from_state: S
    to_state: S
    trigger: T


class Lifecycle(Generic[S, T]):
    """Stateless transition table; the current status lives on the record."""

    def __init__(self, name: str, transitions: list[Transition[S, T]]) -> None:
        self.name = name
        self._transitions = transitions

    def advance(self, current: S, trigger: T) -> S:
        """
        Resolve the status reached from ``current`` via ``trigger``.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self._transitions:
            if t.from_state == current and t.trigger == trigger:
                logger.debug(
                    "%s transition: %s -> %s (trigger: %s)",
                    self.name, current.value, t.to_state.value, trigger.value,
                )
                return t.to_state

        valid = [t.value for t in self.valid_triggers(current)]
        raise InvalidTransitionError(
            f"No valid {self.name} transition from '{current.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def valid_triggers(self, current: S) -> list[T]:
        return [t.trigger for t in self._transitions if t.from_state == current]

    def is_terminal(self, current: S) -> bool:
        return not self.valid_triggers(current)


REQUEST_LIFECYCLE: Lifecycle[RequestStatus, RequestTrigger] = Lifecycle(
    "request",
    [
        Transition(RequestStatus.PENDING, RequestStatus.CONFIRMED, RequestTrigger.CONFIRM),
        Transition(RequestStatus.PENDING, RequestStatus.REJECTED, RequestTrigger.REJECT),
    ],
)

BOOKING_LIFECYCLE: Lifecycle[BookingStatus, BookingTrigger] = Lifecycle(
    "booking",
    [
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingTrigger.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CONFIRMED, BookingTrigger.RESCHEDULE),
    ],
)
