"""Tests for role-based permissions."""

import pytest

from pallet.errors import PermissionDeniedError
from pallet.models import CurrentUser, OrderStatus, Role
from pallet.permissions import (
    ADMIN_PERMISSIONS,
    NO_PERMISSIONS,
    OWNER_PERMISSIONS,
    PermissionLevel,
    can_access_stage,
    get_permissions,
    permission_level,
    require,
)


def user(role: Role) -> CurrentUser:
    return CurrentUser(id=f"{role.value.lower()}-1", display_name=role.value, role=role)


class TestPermissionLevels:
    def test_levels(self):
        assert permission_level(Role.ADMIN) is PermissionLevel.OWNER
        assert permission_level(Role.MANAGER) is PermissionLevel.ADMIN
        assert permission_level(Role.SALES) is PermissionLevel.OPERATOR

    def test_owner_has_everything(self):
        assert all(get_permissions(user(Role.ADMIN)).to_dict().values())

    def test_manager_cannot_delete(self):
        permissions = get_permissions(user(Role.MANAGER))
        assert permissions is ADMIN_PERMISSIONS
        assert not permissions.can_delete_orders
        assert not permissions.can_delete_users
        assert permissions.can_advance_stage

    def test_no_user_has_nothing(self):
        assert get_permissions(None) is NO_PERMISSIONS
        assert not any(NO_PERMISSIONS.to_dict().values())

    def test_read_only_cannot_mutate(self):
        permissions = get_permissions(user(Role.READ_ONLY))
        assert not permissions.can_create_orders
        assert not permissions.can_edit_orders
        assert not permissions.can_advance_stage
        assert permissions.can_view_reports

    def test_only_production_approves_art(self):
        assert get_permissions(user(Role.PRODUCTION)).can_approve_art
        assert not get_permissions(user(Role.SALES)).can_approve_art
        assert OWNER_PERMISSIONS.can_approve_art


class TestStageAccess:
    @pytest.mark.parametrize(
        "role,stage,allowed",
        [
            (Role.SALES, OrderStatus.QUOTE, True),
            (Role.SALES, OrderStatus.PRODUCTION, False),
            (Role.PRODUCTION, OrderStatus.PRODUCTION_PREP, True),
            (Role.PRODUCTION, OrderStatus.INVOICE, False),
            (Role.FULFILLMENT, OrderStatus.CLOSED, True),
            (Role.FULFILLMENT, OrderStatus.LEAD, False),
            (Role.READ_ONLY, OrderStatus.FULFILLMENT, True),
            (Role.ADMIN, OrderStatus.ART_CONFIRMATION, True),
        ],
    )
    def test_can_access_stage(self, role, stage, allowed):
        assert can_access_stage(user(role), stage) is allowed

    def test_unknown_stage(self):
        assert not can_access_stage(user(Role.ADMIN), "Shipped")


class TestRequire:
    def test_allowed(self):
        require(user(Role.SALES), "can_create_orders")

    def test_denied_message(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            require(user(Role.SALES), "can_delete_orders")
        assert str(exc_info.value) == "Role 'Sales' is not allowed to delete orders"

    def test_anonymous(self):
        with pytest.raises(PermissionDeniedError, match="anonymous"):
            require(None, "can_view_reports")
