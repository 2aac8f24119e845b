from booking_core.permissions.permission_model import (
    ACTION_CAPABILITIES,
    Action,
    Decision,
    DenyReason,
    authorize,
    authorize_tenant,
    current_principal,
    visible_tenants,
)

__all__ = [
    "Action",
    "ACTION_CAPABILITIES",
    "Decision",
    "DenyReason",
    "authorize",
    "authorize_tenant",
    "current_principal",
    "visible_tenants",
]
