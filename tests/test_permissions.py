"""Tests for the tenant-ownership permission model."""

import pytest

from booking_core.errors import ErrorCode
from booking_core.permissions import (
    ACTION_CAPABILITIES,
    Action,
    DenyReason,
    authorize,
    authorize_tenant,
    current_principal,
    visible_tenants,
)
from booking_core.schemas.principal_schema import Capability, Principal, Role
from tests.conftest import make_operator, make_owner, make_tenant


class TestPlatformOwner:
    @pytest.mark.parametrize("action", list(Action))
    def test_owner_allowed_everything(self, action):
        tenant = make_tenant(owner_id="someone-else")
        assert authorize(make_owner(), action, tenant).allowed

    def test_owner_allowed_on_missing_resource(self):
        assert authorize(make_owner(), Action.MANAGE_SCHEDULE, None).allowed

    def test_inactive_owner_denied(self):
        owner = Principal(id="owner", role=Role.PLATFORM_OWNER, is_active=False)
        decision = authorize(owner, Action.VIEW_TENANT, make_tenant())
        assert decision.reason == DenyReason.INACTIVE_PRINCIPAL


class TestScopedOperator:
    def test_owner_of_tenant_with_capability_allowed(self):
        decision = authorize(make_operator(), Action.MANAGE_SCHEDULE, make_tenant())
        assert decision.allowed
        assert decision.reason is None

    def test_unowned_tenant_denied_not_owner(self):
        decision = authorize(make_operator(), Action.MANAGE_SCHEDULE, make_tenant(owner_id="op-2"))
        assert not decision.allowed
        assert decision.reason == DenyReason.NOT_OWNER
        assert decision.error_code == ErrorCode.NOT_OWNER

    def test_missing_capability(self):
        operator = make_operator(capabilities={Capability.MANAGE_SERVICES: True})
        decision = authorize(operator, Action.MANAGE_SCHEDULE, make_tenant())
        assert decision.reason == DenyReason.MISSING_CAPABILITY
        assert decision.error_code == ErrorCode.MISSING_CAPABILITY

    def test_explicit_false_capability_denied(self):
        operator = make_operator(capabilities={Capability.DELETE_TENANTS: False})
        decision = authorize(operator, Action.DELETE_TENANT, make_tenant())
        assert decision.reason == DenyReason.MISSING_CAPABILITY

    def test_ownership_checked_before_capability(self):
        operator = make_operator(capabilities={})
        decision = authorize(operator, Action.MANAGE_SCHEDULE, make_tenant(owner_id="op-2"))
        assert decision.reason == DenyReason.NOT_OWNER

    def test_inactive_operator_denied(self):
        decision = authorize(make_operator(is_active=False), Action.VIEW_TENANT, make_tenant())
        assert decision.reason == DenyReason.INACTIVE_PRINCIPAL

    def test_view_needs_only_ownership(self):
        operator = make_operator(capabilities={})
        assert authorize(operator, Action.VIEW_TENANT, make_tenant()).allowed

    def test_missing_resource_denied_as_not_owner(self):
        decision = authorize(make_operator(), Action.MANAGE_SCHEDULE, None)
        assert decision.reason == DenyReason.NOT_OWNER

    def test_create_tenant_needs_only_capability(self):
        assert authorize(make_operator(), Action.CREATE_TENANT).allowed
        without = make_operator(capabilities={Capability.MANAGE_SCHEDULE: True})
        assert authorize(without, Action.CREATE_TENANT).reason == DenyReason.MISSING_CAPABILITY

    def test_operator_manages_only_operators_it_created(self):
        manager = make_operator("op-1", capabilities={Capability.EDIT_OPERATORS: True})
        mine = Principal(id="op-3", role=Role.SCOPED_OPERATOR, owner_id="owner", created_by="op-1")
        theirs = make_operator("op-4")
        assert authorize(manager, Action.EDIT_OPERATOR, mine).allowed
        assert authorize(manager, Action.EDIT_OPERATOR, theirs).reason == DenyReason.NOT_OWNER


class TestActionCatalog:
    def test_every_action_declares_a_capability_entry(self):
        assert set(ACTION_CAPABILITIES) == set(Action)

    def test_mutating_actions_require_exactly_one_capability(self):
        for action in Action:
            if action is Action.VIEW_TENANT:
                assert action.required_capability is None
            else:
                assert isinstance(action.required_capability, Capability)

    def test_confirming_requires_manage_schedule(self):
        assert Action.MANAGE_SCHEDULE.required_capability == Capability.MANAGE_SCHEDULE


class TestPrincipalInvariants:
    def test_operator_needs_owner(self):
        with pytest.raises(ValueError):
            Principal(id="op", role=Role.SCOPED_OPERATOR)

    def test_owner_cannot_be_owned(self):
        with pytest.raises(ValueError):
            Principal(id="owner", role=Role.PLATFORM_OWNER, owner_id="other")

    def test_unknown_capability_rejected(self):
        with pytest.raises(ValueError):
            Principal(
                id="op", role=Role.SCOPED_OPERATOR, owner_id="owner",
                capabilities={"can_launch_rockets": True},
            )

    def test_capability_names_accepted_as_strings(self):
        operator = Principal(
            id="op", role=Role.SCOPED_OPERATOR, owner_id="owner",
            capabilities={"can_manage_schedule": True},
        )
        assert operator.has_capability(Capability.MANAGE_SCHEDULE)
        assert not operator.has_capability(Capability.ADD_TENANTS)


class TestRepositoryBackedChecks:
    def test_authorize_tenant_resolves_by_id(self, repos, operator):
        decision, tenant = authorize_tenant(operator, Action.MANAGE_SCHEDULE, "TEN-1", repos.tenants)
        assert decision.allowed
        assert tenant.id == "TEN-1"

    def test_unowned_and_nonexistent_tenant_are_indistinguishable(self, repos, operator):
        unowned, _ = authorize_tenant(operator, Action.MANAGE_SCHEDULE, "TEN-2", repos.tenants)
        missing, _ = authorize_tenant(operator, Action.MANAGE_SCHEDULE, "TEN-404", repos.tenants)
        assert unowned == missing
        assert unowned.reason == DenyReason.NOT_OWNER

    def test_visible_tenants_filtered_by_owner(self, repos, operator, owner):
        assert [t.id for t in visible_tenants(operator, repos.tenants)] == ["TEN-1"]
        assert {t.id for t in visible_tenants(owner, repos.tenants)} == {"TEN-1", "TEN-2"}

    def test_inactive_operator_sees_nothing(self, repos):
        assert visible_tenants(make_operator(is_active=False), repos.tenants) == []


class TestCurrentPrincipal:
    def test_returns_stored_copy(self, repos, operator):
        stale = operator.model_copy(update={"capabilities": {}})
        fresh = current_principal(stale, repos.principals)
        assert fresh.has_capability(Capability.MANAGE_SCHEDULE)

    def test_stored_deactivation_wins(self, repos, operator):
        stored = repos.principals.get("op-1")
        stored.is_active = False
        repos.principals.put(stored)
        decision = authorize(
            current_principal(operator, repos.principals), Action.VIEW_TENANT, make_tenant()
        )
        assert decision.reason == DenyReason.INACTIVE_PRINCIPAL

    def test_unregistered_principal_comes_back_inactive(self, repos):
        ghost = make_operator("op-ghost")
        resolved = current_principal(ghost, repos.principals)
        assert resolved.id == "op-ghost"
        assert not resolved.is_active
        assert ghost.is_active
