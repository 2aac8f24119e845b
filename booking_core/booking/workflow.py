"""
Booking request workflow.

Drives a customer request from submission to a confirmed booking or a
rejection, and manages confirmed bookings afterwards:

    submit ──► PENDING ──confirm──► CONFIRMED (+ Booking)
                  │
                  └──reject───► REJECTED

Fixed-duration services can skip the request entirely via ``book_direct``.
Flexible services always go through ``confirm``, where an authorized
operator supplies the duration.

Check-and-commit for a booking runs inside the booking store's slot guard
for (tenant, provider, date), so two confirmations racing for overlapping
time cannot both win; the loser gets SLOT_UNAVAILABLE like any other
conflict. Request decisions also hold the request's own guard, so a request
is decided exactly once.

Every public operation returns an OperationResult. Repository outages are
reported as UNAVAILABLE and never confused with a business refusal.
"""

import functools
from contextlib import ExitStack
from typing import Callable, Optional, TypeVar, Union

from booking_core.booking.lifecycle import (
    BOOKING_LIFECYCLE,
    REQUEST_LIFECYCLE,
    BookingTrigger,
    RequestTrigger,
)
from booking_core.config import AppConfig, settings
from booking_core.errors import (
    ErrorCode,
    InvalidTransitionError,
    OperationResult,
    RepositoryUnavailableError,
)
from booking_core.logging_context import get_request_logger, set_request_id
from booking_core.notifications import LoggingNotifier, NotificationPort, dispatch
from booking_core.permissions.permission_model import (
    Action,
    Decision,
    authorize,
    current_principal,
)
from booking_core.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    BookingSummary,
    DurationType,
    Provider,
    RequestStatus,
    Service,
    StatusChange,
)
from booking_core.schemas.customer_schema import CustomerInfo
from booking_core.schemas.event_schema import (
    BookingCancelled,
    BookingConfirmed,
    BookingRejected,
    BookingRescheduled,
)
from booking_core.schemas.principal_schema import Principal
from booking_core.schemas.tenant_schema import Tenant
from booking_core.storage.repositories import Repositories
from booking_core.tools.availability import AvailabilityEngine, Conflict
from booking_core.tools.services import ServiceCatalog
from booking_core.utils import format_time, new_id, parse_time, validate_hhmm, validate_iso_date

logger = get_request_logger(__name__)

F = TypeVar("F", bound=Callable[..., OperationResult])


def _reports_outages(method: F) -> F:
    """Turn adapter outages into an UNAVAILABLE result."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except RepositoryUnavailableError as exc:
            logger.warning("%s failed, store unavailable: %s", method.__name__, exc)
            return OperationResult.fail(ErrorCode.UNAVAILABLE, str(exc))

    return wrapper  # type: ignore[return-value]


def _slot_unavailable(conflict: Conflict) -> OperationResult:
    return OperationResult.fail(
        ErrorCode.SLOT_UNAVAILABLE, f"{conflict.reason.value}: {conflict.message}"
    )


def _as_customer(customer: Union[CustomerInfo, dict]) -> CustomerInfo:
    if isinstance(customer, CustomerInfo):
        return customer
    return CustomerInfo.model_validate(customer)


def _in_range(date: str, date_from: Optional[str], date_to: Optional[str]) -> bool:
    """Inclusive ISO date range check; either bound may be open."""
    return (date_from is None or date >= date_from) and (date_to is None or date <= date_to)


class BookingWorkflow:
    """Inbound operations for booking requests and bookings."""

    def __init__(
        self,
        repos: Repositories,
        notifier: Optional[NotificationPort] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._repos = repos
        self._config = config or settings
        self._notifier = notifier or LoggingNotifier()
        self.catalog = ServiceCatalog(repos, self._config)
        self.availability = AvailabilityEngine(repos, self._config)

    # ------------------------------------------------------------------
    # Customer-facing
    # ------------------------------------------------------------------

    @_reports_outages
    def submit(
        self,
        tenant_id: str,
        service_id: str,
        desired_date: str,
        preferred_window: str,
        customer: Union[CustomerInfo, dict],
    ) -> OperationResult[BookingRequest]:
        """Record a customer's request. It stays PENDING until an operator decides."""
        found = self.catalog.get_bookable_service(tenant_id, service_id)
        if not found.success:
            return found

        request = BookingRequest(
            id=new_id("REQ"),
            tenant_id=tenant_id,
            service_id=service_id,
            desired_date=desired_date,
            preferred_window=preferred_window or "",
            customer=_as_customer(customer),
            history=[StatusChange(status=RequestStatus.PENDING.value)],
        )
        set_request_id(request.id)
        self._repos.requests.put(request)
        logger.info(
            "Request submitted: %s for service %s on %s", request.id, service_id, desired_date
        )
        return OperationResult.ok(request)

    @_reports_outages
    def book_direct(
        self,
        tenant_id: str,
        service_id: str,
        provider_id: str,
        date: str,
        start_time: str,
        customer: Union[CustomerInfo, dict],
    ) -> OperationResult[Booking]:
        """Book a fixed-duration service straight into a picked slot."""
        found = self.catalog.get_bookable_service(tenant_id, service_id)
        if not found.success:
            return found
        service = found.value
        if service.duration_type != DurationType.FIXED:
            return OperationResult.fail(
                ErrorCode.REQUIRES_CONFIRMATION,
                f"Service {service_id} has a flexible duration; submit a request instead.",
            )
        provider = self._tenant_provider(tenant_id, provider_id)
        if provider is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Provider {provider_id} not found.")

        date, start_time = validate_iso_date(date), validate_hhmm(start_time)
        duration = service.fixed_duration_minutes
        with self._repos.bookings.slot_guard(tenant_id, provider_id, date):
            conflict = self.availability.find_conflict(
                tenant_id, provider_id, date, start_time, duration
            )
            if conflict is not None:
                logger.info("Direct booking refused: %s", conflict.message)
                return _slot_unavailable(conflict)
            booking = self._new_booking(
                None, service, provider, _as_customer(customer), date, start_time, duration
            )
            self._repos.bookings.put(booking)

        logger.info(
            "Direct booking created: %s %s %s-%s with %s",
            booking.id, date, booking.start_time, booking.end_time, provider_id,
        )
        self._notify(BookingConfirmed(
            tenant_id=tenant_id, customer=booking.customer, booking=booking,
        ))
        return OperationResult.ok(booking)

    # ------------------------------------------------------------------
    # Operator decisions
    # ------------------------------------------------------------------

    @_reports_outages
    def confirm(
        self,
        request_id: str,
        principal: Principal,
        provider_id: str,
        date: str,
        start_time: str,
        duration_minutes: Optional[int] = None,
    ) -> OperationResult[Booking]:
        """Turn a pending request into a booking at an operator-chosen slot.

        Flexible services need ``duration_minutes`` from the operator. For
        fixed services it may be omitted, but if given it must equal the
        service's duration.
        """
        set_request_id(request_id)
        request, failure = self._authorized_request(principal, request_id)
        if failure is not None:
            return failure
        if request.is_terminal:
            return self._already_finalized(request)

        service = self._repos.services.get(request.service_id)
        if service is None:
            return OperationResult.fail(
                ErrorCode.NOT_FOUND, f"Service {request.service_id} not found."
            )
        duration, failure = self._resolve_duration(service, duration_minutes)
        if failure is not None:
            return failure
        provider = self._tenant_provider(request.tenant_id, provider_id)
        if provider is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Provider {provider_id} not found.")

        date, start_time = validate_iso_date(date), validate_hhmm(start_time)
        with self._repos.requests.guard(request_id):
            request = self._repos.requests.get(request_id)
            try:
                new_status = REQUEST_LIFECYCLE.advance(request.status, RequestTrigger.CONFIRM)
            except InvalidTransitionError:
                return self._already_finalized(request)

            with self._repos.bookings.slot_guard(request.tenant_id, provider_id, date):
                conflict = self.availability.find_conflict(
                    request.tenant_id, provider_id, date, start_time, duration
                )
                if conflict is not None:
                    logger.info("Confirm of %s refused: %s", request_id, conflict.message)
                    return _slot_unavailable(conflict)

                booking = self._new_booking(
                    request.id, service, provider, request.customer, date, start_time, duration
                )
                self._repos.bookings.put(booking)
                request.status = new_status
                request.booking_id = booking.id
                request.history.append(
                    StatusChange(status=new_status.value, actor_id=principal.id)
                )
                self._repos.requests.put(request)

        logger.info(
            "Request %s confirmed by %s: booking %s %s %s-%s",
            request_id, principal.id, booking.id, date, booking.start_time, booking.end_time,
        )
        self._notify(BookingConfirmed(
            tenant_id=request.tenant_id,
            customer=request.customer,
            booking=booking,
            request=request,
        ))
        return OperationResult.ok(booking)

    @_reports_outages
    def reject(
        self, request_id: str, principal: Principal, reason: str = ""
    ) -> OperationResult[BookingRequest]:
        """Decline a pending request. No booking is ever created for it."""
        set_request_id(request_id)
        request, failure = self._authorized_request(principal, request_id)
        if failure is not None:
            return failure

        with self._repos.requests.guard(request_id):
            request = self._repos.requests.get(request_id)
            try:
                new_status = REQUEST_LIFECYCLE.advance(request.status, RequestTrigger.REJECT)
            except InvalidTransitionError:
                return self._already_finalized(request)
            request.status = new_status
            request.rejection_reason = reason or None
            request.history.append(
                StatusChange(status=new_status.value, actor_id=principal.id, note=reason or None)
            )
            self._repos.requests.put(request)

        logger.info("Request %s rejected by %s", request_id, principal.id)
        self._notify(BookingRejected(
            tenant_id=request.tenant_id,
            customer=request.customer,
            request=request,
            reason=reason,
        ))
        return OperationResult.ok(request)

    @_reports_outages
    def cancel(self, booking_id: str, principal: Principal) -> OperationResult[Booking]:
        """Cancel a booking. It is kept for history but frees its interval."""
        booking, failure = self._authorized_booking(principal, booking_id)
        if failure is not None:
            return failure

        with self._repos.bookings.slot_guard(booking.tenant_id, booking.provider_id, booking.date):
            booking = self._repos.bookings.get(booking_id)
            try:
                new_status = BOOKING_LIFECYCLE.advance(booking.status, BookingTrigger.CANCEL)
            except InvalidTransitionError:
                return OperationResult.fail(
                    ErrorCode.ALREADY_FINALIZED, f"Booking {booking_id} is already cancelled."
                )
            booking.status = new_status
            booking.history.append(StatusChange(status=new_status.value, actor_id=principal.id))
            self._repos.bookings.put(booking)

        logger.info("Booking %s cancelled by %s", booking_id, principal.id)
        self._notify(BookingCancelled(
            tenant_id=booking.tenant_id, customer=booking.customer, booking=booking,
        ))
        return OperationResult.ok(booking)

    @_reports_outages
    def reschedule(
        self,
        booking_id: str,
        principal: Principal,
        date: str,
        start_time: str,
    ) -> OperationResult[Booking]:
        """Move a confirmed booking to a new date/time with the same provider."""
        booking, failure = self._authorized_booking(principal, booking_id)
        if failure is not None:
            return failure

        date, start_time = validate_iso_date(date), validate_hhmm(start_time)
        keys = sorted({
            (booking.tenant_id, booking.provider_id, booking.date),
            (booking.tenant_id, booking.provider_id, date),
        })
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._repos.bookings.slot_guard(*key))
            booking = self._repos.bookings.get(booking_id)
            try:
                BOOKING_LIFECYCLE.advance(booking.status, BookingTrigger.RESCHEDULE)
            except InvalidTransitionError:
                return OperationResult.fail(
                    ErrorCode.ALREADY_FINALIZED, f"Booking {booking_id} is cancelled."
                )
            conflict = self.availability.find_conflict(
                booking.tenant_id, booking.provider_id, date, start_time,
                booking.duration_minutes, exclude_booking_id=booking.id,
            )
            if conflict is not None:
                logger.info("Reschedule of %s refused: %s", booking_id, conflict.message)
                return _slot_unavailable(conflict)

            previous_date, previous_start = booking.date, booking.start_time
            moved = Booking.model_validate({
                **booking.model_dump(),
                "date": date,
                "start_time": start_time,
                "end_time": format_time(parse_time(start_time) + booking.duration_minutes),
                "history": [
                    *booking.history,
                    StatusChange(
                        status=booking.status.value,
                        actor_id=principal.id,
                        note=f"moved from {previous_date} {previous_start}",
                    ),
                ],
            })
            self._repos.bookings.put(moved)

        logger.info(
            "Booking %s moved from %s %s to %s %s",
            booking_id, previous_date, previous_start, date, start_time,
        )
        self._notify(BookingRescheduled(
            tenant_id=moved.tenant_id,
            customer=moved.customer,
            booking=moved,
            previous_date=previous_date,
            previous_start_time=previous_start,
        ))
        return OperationResult.ok(moved)

    # ------------------------------------------------------------------
    # Read-side listings, filtered by ownership
    # ------------------------------------------------------------------

    @_reports_outages
    def list_requests(
        self,
        principal: Principal,
        tenant_id: str,
        status: Optional[RequestStatus] = None,
    ) -> OperationResult[list[BookingRequest]]:
        failure = self._tenant_failure(principal, tenant_id)
        if failure is not None:
            return failure
        requests = self._repos.requests.list_by_tenant(tenant_id)
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return OperationResult.ok(requests)

    @_reports_outages
    def list_bookings(
        self,
        principal: Principal,
        tenant_id: str,
        date: Optional[str] = None,
        include_cancelled: bool = False,
    ) -> OperationResult[list[Booking]]:
        failure = self._tenant_failure(principal, tenant_id)
        if failure is not None:
            return failure
        bookings = self._repos.bookings.list_by_tenant(tenant_id)
        if date is not None:
            bookings = [b for b in bookings if b.date == date]
        if not include_cancelled:
            bookings = [b for b in bookings if b.is_active]
        return OperationResult.ok(bookings)

    @_reports_outages
    def booking_summary(
        self,
        principal: Principal,
        tenant_id: str,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> OperationResult[BookingSummary]:
        """Request and booking counts for a tenant, optionally within a date range.

        Booked minutes and per-provider counts only include active bookings.
        """
        failure = self._tenant_failure(principal, tenant_id, Action.VIEW_ANALYTICS)
        if failure is not None:
            return failure
        summary = BookingSummary(tenant_id=tenant_id)
        for request in self._repos.requests.list_by_tenant(tenant_id):
            if _in_range(request.desired_date, date_from, date_to):
                status = request.status.value
                summary.requests_by_status[status] = summary.requests_by_status.get(status, 0) + 1
        for booking in self._repos.bookings.list_by_tenant(tenant_id):
            if not _in_range(booking.date, date_from, date_to):
                continue
            status = booking.status.value
            summary.bookings_by_status[status] = summary.bookings_by_status.get(status, 0) + 1
            if booking.is_active:
                provider = booking.provider_id
                summary.bookings_by_provider[provider] = (
                    summary.bookings_by_provider.get(provider, 0) + 1
                )
                summary.booked_minutes += booking.duration_minutes
        return OperationResult.ok(summary)

    @_reports_outages
    def export_bookings(
        self, principal: Principal, tenant_id: str, include_cancelled: bool = True
    ) -> OperationResult[list[dict]]:
        """Flat, JSON-safe rows of a tenant's bookings, ready for CSV or JSON export."""
        failure = self._tenant_failure(principal, tenant_id, Action.EXPORT_DATA)
        if failure is not None:
            return failure
        rows = [
            {
                "booking_id": b.id,
                "request_id": b.request_id,
                "service_id": b.service_id,
                "provider_id": b.provider_id,
                "date": b.date,
                "start_time": b.start_time,
                "end_time": b.end_time,
                "duration_minutes": b.duration_minutes,
                "status": b.status.value,
                **{f"customer_{k}": v for k, v in b.customer.model_dump(mode="json").items()},
            }
            for b in self._repos.bookings.list_by_tenant(tenant_id)
            if include_cancelled or b.is_active
        ]
        logger.info("Exported %d bookings for %s by %s", len(rows), tenant_id, principal.id)
        return OperationResult.ok(rows)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorized_request(
        self, principal: Principal, request_id: str
    ) -> tuple[Optional[BookingRequest], Optional[OperationResult]]:
        request = self._repos.requests.get(request_id)
        tenant = self._repos.tenants.get(request.tenant_id) if request is not None else None
        decision = self._decide(principal, Action.MANAGE_SCHEDULE, tenant)
        if not decision.allowed:
            logger.info(
                "Principal %s denied on request %s: %s",
                principal.id, request_id, decision.reason.value,
            )
            return None, OperationResult.fail(decision.error_code)
        if request is None:
            return None, OperationResult.fail(
                ErrorCode.NOT_FOUND, f"Request {request_id} not found."
            )
        return request, None

    def _authorized_booking(
        self, principal: Principal, booking_id: str
    ) -> tuple[Optional[Booking], Optional[OperationResult]]:
        booking = self._repos.bookings.get(booking_id)
        tenant = self._repos.tenants.get(booking.tenant_id) if booking is not None else None
        decision = self._decide(principal, Action.MANAGE_SCHEDULE, tenant)
        if not decision.allowed:
            logger.info(
                "Principal %s denied on booking %s: %s",
                principal.id, booking_id, decision.reason.value,
            )
            return None, OperationResult.fail(decision.error_code)
        if booking is None:
            return None, OperationResult.fail(
                ErrorCode.NOT_FOUND, f"Booking {booking_id} not found."
            )
        return booking, None

    def _decide(self, principal: Principal, action: Action, tenant: Optional[Tenant]) -> Decision:
        return authorize(current_principal(principal, self._repos.principals), action, tenant)

    def _tenant_failure(
        self, principal: Principal, tenant_id: str, action: Action = Action.VIEW_TENANT
    ) -> Optional[OperationResult]:
        tenant = self._repos.tenants.get(tenant_id)
        decision = self._decide(principal, action, tenant)
        if not decision.allowed:
            return OperationResult.fail(decision.error_code)
        if tenant is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Tenant {tenant_id} not found.")
        return None

    @staticmethod
    def _resolve_duration(
        service: Service, duration_minutes: Optional[int]
    ) -> tuple[Optional[int], Optional[OperationResult]]:
        if service.duration_type == DurationType.FLEXIBLE:
            if duration_minutes is None or duration_minutes <= 0:
                return None, OperationResult.fail(
                    ErrorCode.INVALID_SERVICE_SPEC,
                    "Flexible services need a positive duration_minutes at confirmation.",
                )
            return duration_minutes, None
        if duration_minutes is None:
            return service.fixed_duration_minutes, None
        if duration_minutes != service.fixed_duration_minutes:
            return None, OperationResult.fail(
                ErrorCode.DURATION_MISMATCH,
                f"Service {service.id} lasts {service.fixed_duration_minutes} minutes, "
                f"got {duration_minutes}.",
            )
        return duration_minutes, None

    def _tenant_provider(self, tenant_id: str, provider_id: str) -> Optional[Provider]:
        provider = self._repos.providers.get(provider_id)
        if provider is None or provider.tenant_id != tenant_id:
            return None
        return provider

    @staticmethod
    def _already_finalized(request: BookingRequest) -> OperationResult:
        return OperationResult.fail(
            ErrorCode.ALREADY_FINALIZED,
            f"Request {request.id} is already {request.status.value}.",
        )

    @staticmethod
    def _new_booking(
        request_id: Optional[str],
        service: Service,
        provider: Provider,
        customer: CustomerInfo,
        date: str,
        start_time: str,
        duration: int,
    ) -> Booking:
        return Booking(
            id=new_id("BK"),
            request_id=request_id,
            tenant_id=service.tenant_id,
            service_id=service.id,
            provider_id=provider.id,
            customer=customer,
            date=date,
            start_time=start_time,
            end_time=format_time(parse_time(start_time) + duration),
            duration_minutes=duration,
            status=BookingStatus.CONFIRMED,
            history=[StatusChange(status=BookingStatus.CONFIRMED.value)],
        )

    def _notify(self, event) -> None:
        dispatch(self._notifier, event, self._config)
