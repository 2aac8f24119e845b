from booking_core.storage.repositories import (
    BookingRepository,
    BookingRequestRepository,
    PrincipalRepository,
    ProviderRepository,
    Repositories,
    ScheduleExceptionRepository,
    ServiceRepository,
    TenantRepository,
)

__all__ = [
    "Repositories",
    "PrincipalRepository", "TenantRepository", "ServiceRepository",
    "ProviderRepository", "ScheduleExceptionRepository",
    "BookingRequestRepository", "BookingRepository",
]
