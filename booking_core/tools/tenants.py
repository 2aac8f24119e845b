"""
Tenant administration for the platform owner and scoped operators.

Every mutation is authorized through the permission model with the single
capability its action declares. Listings are filtered by ownership before
anything else, so an operator never sees another operator's tenants.
"""

import logging
from typing import Optional, Union

from booking_core.config import AppConfig, settings
from booking_core.errors import ErrorCode, OperationResult
from booking_core.permissions.permission_model import (
    Action,
    authorize,
    authorize_tenant,
    current_principal,
    visible_tenants,
)
from booking_core.schemas.booking_schema import Provider, Service, ServiceSpec
from booking_core.schemas.principal_schema import Capability, Principal, Role
from booking_core.schemas.tenant_schema import ScheduleException, Tenant, TimeRange, WeeklySchedule
from booking_core.storage.repositories import Repositories
from booking_core.tools.calendar import CalendarPolicy, RangeInput
from booking_core.tools.services import ServiceCatalog
from booking_core.utils import new_id

logger = logging.getLogger(__name__)


def _denied(decision) -> OperationResult:
    return OperationResult.fail(decision.error_code)


class TenantAdmin:
    """Authorized management of tenants, their staff, services and calendar."""

    def __init__(self, repos: Repositories, config: Optional[AppConfig] = None) -> None:
        self._repos = repos
        self._config = config or settings
        self.catalog = ServiceCatalog(repos, self._config)
        self.calendar = CalendarPolicy(repos)

    def _tenant_access(
        self, principal: Principal, action: Action, tenant_id: str
    ) -> tuple[Optional[Tenant], Optional[OperationResult]]:
        principal = current_principal(principal, self._repos.principals)
        decision, tenant = authorize_tenant(principal, action, tenant_id, self._repos.tenants)
        if not decision.allowed:
            logger.info(
                "Principal %s denied %s on tenant %s: %s",
                principal.id, action.value, tenant_id, decision.reason.value,
            )
            return None, _denied(decision)
        if tenant is None:
            return None, OperationResult.fail(ErrorCode.NOT_FOUND, f"Tenant {tenant_id} not found.")
        return tenant, None

    # --- tenants -------------------------------------------------------

    def create_tenant(
        self,
        principal: Principal,
        name: str,
        operating_hours: Optional[WeeklySchedule] = None,
    ) -> OperationResult[Tenant]:
        principal = current_principal(principal, self._repos.principals)
        decision = authorize(principal, Action.CREATE_TENANT)
        if not decision.allowed:
            return _denied(decision)
        tenant = Tenant(
            id=new_id("TEN"),
            name=name,
            owner_principal_id=principal.id,
            operating_hours=operating_hours or WeeklySchedule(),
        )
        self._repos.tenants.put(tenant)
        logger.info("Tenant created: %s (%s) by %s", tenant.id, name, principal.id)
        return OperationResult.ok(tenant)

    def list_tenants(self, principal: Principal) -> list[Tenant]:
        principal = current_principal(principal, self._repos.principals)
        return visible_tenants(principal, self._repos.tenants)

    def get_tenant(self, principal: Principal, tenant_id: str) -> OperationResult[Tenant]:
        tenant, failure = self._tenant_access(principal, Action.VIEW_TENANT, tenant_id)
        return failure or OperationResult.ok(tenant)

    def update_operating_hours(
        self, principal: Principal, tenant_id: str, operating_hours: WeeklySchedule
    ) -> OperationResult[Tenant]:
        tenant, failure = self._tenant_access(principal, Action.EDIT_TENANT, tenant_id)
        if failure:
            return failure
        tenant.operating_hours = operating_hours
        self._repos.tenants.put(tenant)
        logger.info("Operating hours updated for %s", tenant_id)
        return OperationResult.ok(tenant)

    def deactivate_tenant(self, principal: Principal, tenant_id: str) -> OperationResult[Tenant]:
        """Soft-delete: the tenant stops taking bookings but keeps its history."""
        tenant, failure = self._tenant_access(principal, Action.DELETE_TENANT, tenant_id)
        if failure:
            return failure
        tenant.is_active = False
        self._repos.tenants.put(tenant)
        logger.info("Tenant deactivated: %s by %s", tenant_id, principal.id)
        return OperationResult.ok(tenant)

    # --- staff ---------------------------------------------------------

    def add_provider(
        self,
        principal: Principal,
        tenant_id: str,
        name: str,
        working_days: list[str],
        working_hours: Union[TimeRange, tuple[str, str]],
    ) -> OperationResult[Provider]:
        _, failure = self._tenant_access(principal, Action.MANAGE_STAFF, tenant_id)
        if failure:
            return failure
        if not isinstance(working_hours, TimeRange):
            start, end = working_hours
            working_hours = TimeRange(start_time=start, end_time=end)
        provider = Provider(
            id=new_id("PRV"),
            tenant_id=tenant_id,
            name=name,
            working_days=set(working_days),
            working_hours=working_hours,
        )
        self._repos.providers.put(provider)
        logger.info("Provider added: %s (%s) to %s", provider.id, name, tenant_id)
        return OperationResult.ok(provider)

    def deactivate_provider(
        self, principal: Principal, provider_id: str
    ) -> OperationResult[Provider]:
        provider = self._repos.providers.get(provider_id)
        tenant_id = provider.tenant_id if provider is not None else ""
        _, failure = self._tenant_access(principal, Action.MANAGE_STAFF, tenant_id)
        if failure:
            return failure
        provider.is_active = False
        self._repos.providers.put(provider)
        logger.info("Provider deactivated: %s", provider_id)
        return OperationResult.ok(provider)

    # --- services ------------------------------------------------------

    def add_service(
        self, principal: Principal, tenant_id: str, spec: Union[ServiceSpec, dict]
    ) -> OperationResult[Service]:
        _, failure = self._tenant_access(principal, Action.MANAGE_SERVICES, tenant_id)
        return failure or self.catalog.define_service(tenant_id, spec)

    def deactivate_service(
        self, principal: Principal, service_id: str
    ) -> OperationResult[Service]:
        service = self._repos.services.get(service_id)
        tenant_id = service.tenant_id if service is not None else ""
        _, failure = self._tenant_access(principal, Action.MANAGE_SERVICES, tenant_id)
        return failure or self.catalog.deactivate(service_id)

    # --- calendar ------------------------------------------------------

    def block_date(
        self,
        principal: Principal,
        tenant_id: str,
        date: str,
        time_range: RangeInput = None,
        reason: str = "",
    ) -> OperationResult[ScheduleException]:
        _, failure = self._tenant_access(principal, Action.MANAGE_SCHEDULE, tenant_id)
        return failure or self.calendar.add_exception(tenant_id, date, time_range, reason)

    def unblock_date(
        self, principal: Principal, tenant_id: str, date: str
    ) -> OperationResult[bool]:
        _, failure = self._tenant_access(principal, Action.MANAGE_SCHEDULE, tenant_id)
        return failure or self.calendar.remove_exception(tenant_id, date)

    # --- operators -----------------------------------------------------

    @staticmethod
    def _escalation_failure(
        principal: Principal, capabilities: dict[Capability, bool]
    ) -> Optional[OperationResult]:
        """Operators may only hand out capabilities they hold themselves."""
        if principal.is_platform_owner:
            return None
        escalated = [c for c, on in capabilities.items() if on and not principal.has_capability(c)]
        if not escalated:
            return None
        logger.info(
            "Principal %s tried to grant %s", principal.id, [c.value for c in escalated]
        )
        return OperationResult.fail(
            ErrorCode.MISSING_CAPABILITY,
            f"Cannot grant capabilities you do not hold: {[c.value for c in escalated]}",
        )

    def create_operator(
        self,
        principal: Principal,
        capabilities: dict[Capability, bool],
        operator_id: Optional[str] = None,
    ) -> OperationResult[Principal]:
        """Create a scoped operator owned by the platform owner.

        An operator creating another operator cannot hand out capabilities
        it does not hold itself. Ids already in use are refused; scoped
        callers see NOT_OWNER so existing principals stay hidden from them.
        """
        principal = current_principal(principal, self._repos.principals)
        decision = authorize(principal, Action.CREATE_OPERATOR)
        if not decision.allowed:
            return _denied(decision)
        failure = self._escalation_failure(principal, capabilities)
        if failure:
            return failure
        if operator_id is not None and self._repos.principals.get(operator_id) is not None:
            logger.info("Principal %s tried to reuse id %s", principal.id, operator_id)
            if principal.is_platform_owner:
                return OperationResult.fail(
                    ErrorCode.ALREADY_EXISTS, f"Principal {operator_id} already exists."
                )
            return OperationResult.fail(ErrorCode.NOT_OWNER)

        operator = Principal(
            id=operator_id or new_id("OP"),
            role=Role.SCOPED_OPERATOR,
            owner_id=principal.id if principal.is_platform_owner else principal.owner_id,
            created_by=principal.id,
            capabilities=dict(capabilities),
        )
        self._repos.principals.put(operator)
        logger.info("Operator created: %s by %s", operator.id, principal.id)
        return OperationResult.ok(operator)

    def _operator_access(
        self, principal: Principal, operator_id: str
    ) -> tuple[Optional[Principal], Principal, Optional[OperationResult]]:
        principal = current_principal(principal, self._repos.principals)
        target = self._repos.principals.get(operator_id)
        decision = authorize(principal, Action.EDIT_OPERATOR, target)
        if not decision.allowed:
            return None, principal, _denied(decision)
        if target is None:
            return None, principal, OperationResult.fail(
                ErrorCode.NOT_FOUND, f"Operator {operator_id} not found."
            )
        return target, principal, None

    def update_capabilities(
        self,
        principal: Principal,
        operator_id: str,
        capabilities: dict[Capability, bool],
    ) -> OperationResult[Principal]:
        """Merge ``capabilities`` into the operator's. Revoking is always allowed."""
        target, principal, failure = self._operator_access(principal, operator_id)
        if failure:
            return failure
        failure = self._escalation_failure(principal, capabilities)
        if failure:
            return failure
        target.capabilities = {**target.capabilities, **capabilities}
        self._repos.principals.put(target)
        logger.info("Capabilities updated for %s by %s", operator_id, principal.id)
        return OperationResult.ok(target)

    def set_operator_active(
        self, principal: Principal, operator_id: str, is_active: bool
    ) -> OperationResult[Principal]:
        target, principal, failure = self._operator_access(principal, operator_id)
        if failure:
            return failure
        target.is_active = is_active
        self._repos.principals.put(target)
        logger.info("Operator %s %s", operator_id, "activated" if is_active else "deactivated")
        return OperationResult.ok(target)
