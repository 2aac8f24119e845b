"""
Persistence boundary for the booking core.

Each repository is a narrow get/put/list-by-owner Protocol. The core never
assumes a storage technology; the in-memory adapters below back the tests
and the demo, and a database adapter only has to honour the same methods.
Adapters signal an unreachable store by raising RepositoryUnavailableError.

Booking stores additionally expose ``slot_guard``: the section it guards is
the compare-and-commit unit for one (tenant, provider, date). A SQL adapter
would implement it as a serializable transaction or a row lock on that key.
"""

import logging
import threading
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel

from booking_core.schemas.booking_schema import Booking, BookingRequest, Provider, Service
from booking_core.schemas.principal_schema import Principal
from booking_core.schemas.tenant_schema import ScheduleException, Tenant
from booking_core.storage.locks import KeyedLocks

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class PrincipalRepository(Protocol):
    def get(self, principal_id: str) -> Optional[Principal]: ...
    def put(self, principal: Principal) -> None: ...
    def list_by_creator(self, creator_id: str) -> list[Principal]: ...


class TenantRepository(Protocol):
    def get(self, tenant_id: str) -> Optional[Tenant]: ...
    def put(self, tenant: Tenant) -> None: ...
    def list_by_owner(self, owner_principal_id: str) -> list[Tenant]: ...
    def list_all(self) -> list[Tenant]: ...


class ServiceRepository(Protocol):
    def get(self, service_id: str) -> Optional[Service]: ...
    def put(self, service: Service) -> None: ...
    def list_by_tenant(self, tenant_id: str) -> list[Service]: ...


class ProviderRepository(Protocol):
    def get(self, provider_id: str) -> Optional[Provider]: ...
    def put(self, provider: Provider) -> None: ...
    def list_by_tenant(self, tenant_id: str) -> list[Provider]: ...


class ScheduleExceptionRepository(Protocol):
    def get(self, tenant_id: str, date: str) -> Optional[ScheduleException]: ...
    def put(self, exception: ScheduleException) -> None: ...
    def delete(self, tenant_id: str, date: str) -> bool: ...
    def list_by_tenant(self, tenant_id: str) -> list[ScheduleException]: ...


class BookingRequestRepository(Protocol):
    def get(self, request_id: str) -> Optional[BookingRequest]: ...
    def put(self, request: BookingRequest) -> None: ...
    def list_by_tenant(self, tenant_id: str) -> list[BookingRequest]: ...
    def guard(self, request_id: str) -> AbstractContextManager: ...


class BookingRepository(Protocol):
    def get(self, booking_id: str) -> Optional[Booking]: ...
    def put(self, booking: Booking) -> None: ...
    def list_by_tenant(self, tenant_id: str) -> list[Booking]: ...
    def list_for_provider(self, tenant_id: str, provider_id: str, date: str) -> list[Booking]: ...
    def slot_guard(self, tenant_id: str, provider_id: str, date: str) -> AbstractContextManager: ...


class _InMemoryStore(Generic[M]):
    """Thread-safe dict of pydantic models, copied on the way in and out."""

    def __init__(self) -> None:
        self._items: dict[str, M] = {}
        self._mutex = threading.RLock()

    def _get(self, key: str) -> Optional[M]:
        with self._mutex:
            item = self._items.get(key)
            return item.model_copy(deep=True) if item is not None else None

    def _put(self, key: str, item: M) -> None:
        with self._mutex:
            self._items[key] = item.model_copy(deep=True)

    def _delete(self, key: str) -> bool:
        with self._mutex:
            return self._items.pop(key, None) is not None

    def _select(self, predicate) -> list[M]:
        with self._mutex:
            return [i.model_copy(deep=True) for i in self._items.values() if predicate(i)]


class InMemoryPrincipalRepository(_InMemoryStore[Principal]):
    def get(self, principal_id: str) -> Optional[Principal]:
        return self._get(principal_id)

    def put(self, principal: Principal) -> None:
        self._put(principal.id, principal)

    def list_by_creator(self, creator_id: str) -> list[Principal]:
        return self._select(lambda p: p.created_by == creator_id)


class InMemoryTenantRepository(_InMemoryStore[Tenant]):
    def get(self, tenant_id: str) -> Optional[Tenant]:
        return self._get(tenant_id)

    def put(self, tenant: Tenant) -> None:
        self._put(tenant.id, tenant)

    def list_by_owner(self, owner_principal_id: str) -> list[Tenant]:
        return self._select(lambda t: t.owner_principal_id == owner_principal_id)

    def list_all(self) -> list[Tenant]:
        return self._select(lambda t: True)


class InMemoryServiceRepository(_InMemoryStore[Service]):
    def get(self, service_id: str) -> Optional[Service]:
        return self._get(service_id)

    def put(self, service: Service) -> None:
        self._put(service.id, service)

    def list_by_tenant(self, tenant_id: str) -> list[Service]:
        return self._select(lambda s: s.tenant_id == tenant_id)


class InMemoryProviderRepository(_InMemoryStore[Provider]):
    def get(self, provider_id: str) -> Optional[Provider]:
        return self._get(provider_id)

    def put(self, provider: Provider) -> None:
        self._put(provider.id, provider)

    def list_by_tenant(self, tenant_id: str) -> list[Provider]:
        return self._select(lambda p: p.tenant_id == tenant_id)


class InMemoryScheduleExceptionRepository(_InMemoryStore[ScheduleException]):
    """One exception per (tenant, date); put replaces."""

    @staticmethod
    def _key(tenant_id: str, date: str) -> str:
        return f"{tenant_id}|{date}"

    def get(self, tenant_id: str, date: str) -> Optional[ScheduleException]:
        return self._get(self._key(tenant_id, date))

    def put(self, exception: ScheduleException) -> None:
        self._put(self._key(exception.tenant_id, exception.date), exception)

    def delete(self, tenant_id: str, date: str) -> bool:
        return self._delete(self._key(tenant_id, date))

    def list_by_tenant(self, tenant_id: str) -> list[ScheduleException]:
        found = self._select(lambda e: e.tenant_id == tenant_id)
        return sorted(found, key=lambda e: e.date)


class InMemoryBookingRequestRepository(_InMemoryStore[BookingRequest]):
    def __init__(self) -> None:
        super().__init__()
        self._locks = KeyedLocks()

    def get(self, request_id: str) -> Optional[BookingRequest]:
        return self._get(request_id)

    def put(self, request: BookingRequest) -> None:
        self._put(request.id, request)

    def list_by_tenant(self, tenant_id: str) -> list[BookingRequest]:
        found = self._select(lambda r: r.tenant_id == tenant_id)
        return sorted(found, key=lambda r: r.created_at)

    def guard(self, request_id: str) -> AbstractContextManager:
        return self._locks.hold(("request", request_id))


class InMemoryBookingRepository(_InMemoryStore[Booking]):
    def __init__(self) -> None:
        super().__init__()
        self._locks = KeyedLocks()

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._get(booking_id)

    def put(self, booking: Booking) -> None:
        self._put(booking.id, booking)

    def list_by_tenant(self, tenant_id: str) -> list[Booking]:
        found = self._select(lambda b: b.tenant_id == tenant_id)
        return sorted(found, key=lambda b: (b.date, b.start_time))

    def list_for_provider(self, tenant_id: str, provider_id: str, date: str) -> list[Booking]:
        found = self._select(
            lambda b: b.tenant_id == tenant_id and b.provider_id == provider_id and b.date == date
        )
        return sorted(found, key=lambda b: b.start_time)

    def slot_guard(self, tenant_id: str, provider_id: str, date: str) -> AbstractContextManager:
        return self._locks.hold(("slot", tenant_id, provider_id, date))


@dataclass
class Repositories:
    """Every store the core needs, passed explicitly into each engine."""

    principals: PrincipalRepository
    tenants: TenantRepository
    services: ServiceRepository
    providers: ProviderRepository
    exceptions: ScheduleExceptionRepository
    requests: BookingRequestRepository
    bookings: BookingRepository

    @classmethod
    def in_memory(cls) -> "Repositories":
        repos = cls(
            principals=InMemoryPrincipalRepository(),
            tenants=InMemoryTenantRepository(),
            services=InMemoryServiceRepository(),
            providers=InMemoryProviderRepository(),
            exceptions=InMemoryScheduleExceptionRepository(),
            requests=InMemoryBookingRequestRepository(),
            bookings=InMemoryBookingRepository(),
        )
        logger.debug("In-memory repositories created")
        return repos
