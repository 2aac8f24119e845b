"""Principals, roles and the closed capability universe."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Role(str, Enum):
    PLATFORM_OWNER = "platform_owner"
    SCOPED_OPERATOR = "scoped_operator"


class Capability(str, Enum):
    """Every named permission a principal can hold."""

    ADD_TENANTS = "can_add_tenants"
    EDIT_TENANTS = "can_edit_tenants"
    DELETE_TENANTS = "can_delete_tenants"
    VIEW_ANALYTICS = "can_view_analytics"
    MANAGE_SCHEDULE = "can_manage_schedule"
    MANAGE_SERVICES = "can_manage_services"
    MANAGE_STAFF = "can_manage_staff"
    ADD_OPERATORS = "can_add_operators"
    EDIT_OPERATORS = "can_edit_operators"
    EXPORT_DATA = "can_export_data"


class Principal(BaseModel):
    """An authenticated actor: the platform owner or one of its operators."""

    id: str
    role: Role
    owner_id: Optional[str] = None
    created_by: Optional[str] = None
    is_active: bool = True
    capabilities: dict[Capability, bool] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_ownership(self) -> "Principal":
        if self.role == Role.PLATFORM_OWNER and self.owner_id is not None:
            raise ValueError("A platform owner cannot have an owner")
        if self.role == Role.SCOPED_OPERATOR and not self.owner_id:
            raise ValueError("A scoped operator must be owned by the platform owner")
        return self

    @property
    def is_platform_owner(self) -> bool:
        return self.role == Role.PLATFORM_OWNER

    def has_capability(self, capability: Capability) -> bool:
        return self.capabilities.get(capability, False)
