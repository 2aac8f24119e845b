"""
Tenant-ownership permission model.

A decision is a pure function of the acting principal, the action and the
resource as stored. The platform owner may do anything; a scoped operator
needs both ownership of the resource and the single capability the action
declares. Unknown resources deny exactly like unowned ones so an operator
learns nothing about tenants that are not theirs.

Callers pass the principal through ``current_principal`` first, so a
deactivation or revoked capability applies even to a stale copy.

Usage:
    operator = current_principal(operator, repos.principals)
    decision = authorize(operator, Action.MANAGE_SCHEDULE, tenant)
    if not decision.allowed:
        return OperationResult.fail(decision.error_code)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from booking_core.errors import ErrorCode
from booking_core.schemas.principal_schema import Capability, Principal
from booking_core.schemas.tenant_schema import Tenant
from booking_core.storage.repositories import PrincipalRepository, TenantRepository

logger = logging.getLogger(__name__)

Resource = Union[Tenant, Principal, None]


class Action(str, Enum):
    """Everything a principal can attempt against the core."""

    VIEW_TENANT = "view_tenant"
    CREATE_TENANT = "create_tenant"
    EDIT_TENANT = "edit_tenant"
    DELETE_TENANT = "delete_tenant"
    MANAGE_SCHEDULE = "manage_schedule"
    MANAGE_SERVICES = "manage_services"
    MANAGE_STAFF = "manage_staff"
    VIEW_ANALYTICS = "view_analytics"
    EXPORT_DATA = "export_data"
    CREATE_OPERATOR = "create_operator"
    EDIT_OPERATOR = "edit_operator"

    @property
    def required_capability(self) -> Optional[Capability]:
        return ACTION_CAPABILITIES[self]


# Read-only actions map to None: ownership alone is enough.
ACTION_CAPABILITIES: dict[Action, Optional[Capability]] = {
    Action.VIEW_TENANT: None,
    Action.CREATE_TENANT: Capability.ADD_TENANTS,
    Action.EDIT_TENANT: Capability.EDIT_TENANTS,
    Action.DELETE_TENANT: Capability.DELETE_TENANTS,
    Action.MANAGE_SCHEDULE: Capability.MANAGE_SCHEDULE,
    Action.MANAGE_SERVICES: Capability.MANAGE_SERVICES,
    Action.MANAGE_STAFF: Capability.MANAGE_STAFF,
    Action.VIEW_ANALYTICS: Capability.VIEW_ANALYTICS,
    Action.EXPORT_DATA: Capability.EXPORT_DATA,
    Action.CREATE_OPERATOR: Capability.ADD_OPERATORS,
    Action.EDIT_OPERATOR: Capability.EDIT_OPERATORS,
}

# Actions whose resource does not exist yet.
CREATION_ACTIONS = frozenset({Action.CREATE_TENANT, Action.CREATE_OPERATOR})


class DenyReason(str, Enum):
    NOT_OWNER = "not_owner"
    MISSING_CAPABILITY = "missing_capability"
    INACTIVE_PRINCIPAL = "inactive_principal"


_DENY_ERRORS = {
    DenyReason.NOT_OWNER: ErrorCode.NOT_OWNER,
    DenyReason.MISSING_CAPABILITY: ErrorCode.MISSING_CAPABILITY,
    DenyReason.INACTIVE_PRINCIPAL: ErrorCode.INACTIVE_PRINCIPAL,
}


@dataclass(frozen=True)
class Decision:
    """Allow, or Deny with a machine-readable reason."""
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return _DENY_ERRORS[self.reason] if self.reason is not None else None


def _owns(principal: Principal, action: Action, resource: Resource) -> bool:
    if resource is None:
        return action in CREATION_ACTIONS
    if isinstance(resource, Tenant):
        return resource.owner_principal_id == principal.id
    if isinstance(resource, Principal):
        return resource.created_by == principal.id
    raise TypeError(f"Unsupported resource type: {type(resource).__name__}")


def authorize(principal: Principal, action: Action, resource: Resource = None) -> Decision:
    """Decide whether ``principal`` may perform ``action`` on ``resource``.

    ``resource`` is the owning Tenant for tenant-scoped actions, the target
    Principal for operator management, and None for creation actions or
    when the addressed resource does not exist.
    """
    if not principal.is_active:
        return Decision.deny(DenyReason.INACTIVE_PRINCIPAL)
    if principal.is_platform_owner:
        return Decision.allow()
    if not _owns(principal, action, resource):
        logger.debug("Deny %s for %s: not owner", action.value, principal.id)
        return Decision.deny(DenyReason.NOT_OWNER)
    capability = action.required_capability
    if capability is not None and not principal.has_capability(capability):
        logger.debug(
            "Deny %s for %s: missing %s", action.value, principal.id, capability.value
        )
        return Decision.deny(DenyReason.MISSING_CAPABILITY)
    return Decision.allow()


def authorize_tenant(
    principal: Principal,
    action: Action,
    tenant_id: str,
    tenants: TenantRepository,
) -> tuple[Decision, Optional[Tenant]]:
    """Resolve the tenant by id, then authorize against it.

    A missing tenant is passed through as ``None`` so scoped operators get
    the same NOT_OWNER they would get for someone else's tenant.
    """
    tenant = tenants.get(tenant_id)
    return authorize(principal, action, tenant), tenant


def visible_tenants(principal: Principal, tenants: TenantRepository) -> list[Tenant]:
    """Tenants the principal may see, filtered by ownership first."""
    if not principal.is_active:
        return []
    if principal.is_platform_owner:
        return tenants.list_all()
    return tenants.list_by_owner(principal.id)


def current_principal(principal: Principal, principals: PrincipalRepository) -> Principal:
    """Re-read the acting principal from the store.

    Deactivation and capability changes apply to the very next check, no
    matter how stale the caller's copy is. A principal that is no longer
    stored comes back inactive, so every action is denied.
    """
    stored = principals.get(principal.id)
    if stored is None:
        logger.info("Principal %s is not registered", principal.id)
        return principal.model_copy(update={"is_active": False})
    return stored
