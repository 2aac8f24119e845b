"""Shared test fixtures and helpers."""

from typing import Optional

import pytest

from booking_core.booking.workflow import BookingWorkflow
from booking_core.notifications import OutboxNotifier
from booking_core.schemas.booking_schema import (
    Booking,
    BookingStatus,
    DurationType,
    Provider,
    Service,
)
from booking_core.schemas.customer_schema import CustomerInfo
from booking_core.schemas.principal_schema import Capability, Principal, Role
from booking_core.schemas.tenant_schema import Tenant, TimeRange, WeeklySchedule
from booking_core.storage.repositories import Repositories
from booking_core.tools.availability import AvailabilityEngine
from booking_core.tools.calendar import CalendarPolicy
from booking_core.tools.tenants import TenantAdmin
from booking_core.utils import format_time, parse_time

MONDAY = "2024-02-12"
TUESDAY = "2024-02-13"
WEDNESDAY = "2024-02-14"
SATURDAY = "2024-02-17"

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]

OPERATOR_CAPABILITIES = {
    Capability.ADD_TENANTS: True,
    Capability.MANAGE_SCHEDULE: True,
    Capability.MANAGE_SERVICES: True,
    Capability.MANAGE_STAFF: True,
}


def make_owner(principal_id: str = "owner") -> Principal:
    return Principal(id=principal_id, role=Role.PLATFORM_OWNER)


def make_operator(
    principal_id: str = "op-1",
    capabilities: Optional[dict] = None,
    owner_id: str = "owner",
    is_active: bool = True,
) -> Principal:
    return Principal(
        id=principal_id,
        role=Role.SCOPED_OPERATOR,
        owner_id=owner_id,
        created_by=owner_id,
        is_active=is_active,
        capabilities=OPERATOR_CAPABILITIES if capabilities is None else capabilities,
    )


def make_tenant(tenant_id: str = "TEN-1", owner_id: str = "op-1", **kwargs) -> Tenant:
    kwargs.setdefault("operating_hours", WeeklySchedule.uniform(WEEKDAYS, "09:00", "18:00"))
    return Tenant(id=tenant_id, name=f"Tenant {tenant_id}", owner_principal_id=owner_id, **kwargs)


def make_provider(
    provider_id: str = "PRV-1",
    tenant_id: str = "TEN-1",
    days: Optional[list[str]] = None,
    start: str = "10:00",
    end: str = "17:00",
) -> Provider:
    return Provider(
        id=provider_id,
        tenant_id=tenant_id,
        name="Abebe",
        working_days=set(days or ["tuesday", "wednesday", "thursday", "friday"]),
        working_hours=TimeRange(start_time=start, end_time=end),
    )


def make_booking(
    start: str,
    duration: int,
    date: str = TUESDAY,
    booking_id: str = "BK-EXISTING",
    provider_id: str = "PRV-1",
    tenant_id: str = "TEN-1",
    service_id: str = "SVC-FIXED",
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    return Booking(
        id=booking_id,
        tenant_id=tenant_id,
        service_id=service_id,
        provider_id=provider_id,
        customer=CustomerInfo(name="Existing Customer"),
        date=date,
        start_time=start,
        end_time=format_time(parse_time(start) + duration),
        duration_minutes=duration,
        status=status,
    )


@pytest.fixture
def customer():
    return CustomerInfo(name="Selam Tesfaye", email="selam@example.com", phone="+251 91 234 5678")


@pytest.fixture
def owner():
    return make_owner()


@pytest.fixture
def operator():
    return make_operator()


@pytest.fixture
def rival_operator():
    return make_operator("op-2")


@pytest.fixture
def repos(owner, operator, rival_operator):
    repos = Repositories.in_memory()
    for principal in (owner, operator, rival_operator):
        repos.principals.put(principal)
    repos.tenants.put(make_tenant())
    repos.tenants.put(make_tenant("TEN-2", owner_id="op-2"))
    repos.providers.put(make_provider())
    repos.services.put(Service(
        id="SVC-FIXED",
        tenant_id="TEN-1",
        name="Haircut",
        duration_type=DurationType.FIXED,
        fixed_duration_minutes=30,
    ))
    repos.services.put(Service(
        id="SVC-FLEX",
        tenant_id="TEN-1",
        name="Styling consultation",
        duration_type=DurationType.FLEXIBLE,
    ))
    return repos


@pytest.fixture
def outbox():
    return OutboxNotifier()


@pytest.fixture
def workflow(repos, outbox):
    return BookingWorkflow(repos, notifier=outbox)


@pytest.fixture
def engine(repos):
    return AvailabilityEngine(repos)


@pytest.fixture
def calendar(repos):
    return CalendarPolicy(repos)


@pytest.fixture
def admin(repos):
    return TenantAdmin(repos)
