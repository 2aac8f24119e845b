"""
Service catalog: bookable offerings per tenant.

A FIXED service always carries its duration; a FLEXIBLE one never does and
is therefore only bookable through a manually confirmed request.
"""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from booking_core.config import AppConfig, settings
from booking_core.errors import ErrorCode, OperationResult
from booking_core.schemas.booking_schema import DurationType, Service, ServiceSpec
from booking_core.storage.repositories import Repositories
from booking_core.utils import new_id

logger = logging.getLogger(__name__)


class ServiceCatalog:
    """Defines, deactivates and resolves services for tenants."""

    def __init__(self, repos: Repositories, config: Optional[AppConfig] = None) -> None:
        self._repos = repos
        self._config = config or settings

    def _spec_error(self, spec: ServiceSpec) -> Optional[str]:
        duration = spec.fixed_duration_minutes
        if spec.duration_type == DurationType.FLEXIBLE:
            if duration is not None:
                return "Flexible services must not declare a fixed duration."
            return None
        if duration is None or duration <= 0:
            return "Fixed services need a positive fixed_duration_minutes."
        limit = self._config.catalog.max_service_duration_minutes
        if duration > limit:
            return f"Fixed duration {duration} exceeds the {limit}-minute limit."
        return None

    def define_service(
        self, tenant_id: str, spec: Union[ServiceSpec, dict]
    ) -> OperationResult[Service]:
        """Validate ``spec`` and store a new active service for the tenant."""
        if isinstance(spec, dict):
            try:
                spec = ServiceSpec.model_validate(spec)
            except ValidationError as exc:
                return OperationResult.fail(ErrorCode.INVALID_SERVICE_SPEC, str(exc))

        if self._repos.tenants.get(tenant_id) is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Tenant {tenant_id} not found.")

        problem = self._spec_error(spec)
        if problem:
            logger.info("Rejected service spec for %s: %s", tenant_id, problem)
            return OperationResult.fail(ErrorCode.INVALID_SERVICE_SPEC, problem)

        service = Service(
            id=new_id("SVC"),
            tenant_id=tenant_id,
            name=spec.name,
            duration_type=spec.duration_type,
            fixed_duration_minutes=spec.fixed_duration_minutes,
        )
        self._repos.services.put(service)
        logger.info(
            "Service defined: %s (%s) for tenant %s",
            service.id, service.duration_type.value, tenant_id,
        )
        return OperationResult.ok(service)

    def deactivate(self, service_id: str) -> OperationResult[Service]:
        """Stop accepting new requests for a service. Existing bookings stand."""
        service = self._repos.services.get(service_id)
        if service is None:
            return OperationResult.fail(ErrorCode.NOT_FOUND, f"Service {service_id} not found.")
        if service.is_active:
            service.is_active = False
            self._repos.services.put(service)
            logger.info("Service deactivated: %s", service_id)
        return OperationResult.ok(service)

    def get_bookable_service(self, tenant_id: str, service_id: str) -> OperationResult[Service]:
        """Resolve a service that can take new requests right now."""
        tenant = self._repos.tenants.get(tenant_id)
        service = self._repos.services.get(service_id)
        if (
            tenant is None
            or not tenant.is_active
            or service is None
            or service.tenant_id != tenant_id
            or not service.is_active
        ):
            return OperationResult.fail(
                ErrorCode.SERVICE_UNAVAILABLE,
                f"Service {service_id} is not available for booking.",
            )
        return OperationResult.ok(service)

    def list_services(self, tenant_id: str, include_inactive: bool = False) -> list[Service]:
        services = self._repos.services.list_by_tenant(tenant_id)
        if include_inactive:
            return services
        return [s for s in services if s.is_active]
