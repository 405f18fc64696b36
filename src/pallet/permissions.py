"""Role-based permissions.

The workflow functions never look at roles; the CLI and API check
these before calling them.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum

from .errors import PermissionDeniedError
from .models import CurrentUser, OrderStatus, Role
from .stages import status_label


class PermissionLevel(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    OPERATOR = "operator"


@dataclass(frozen=True)
class Permissions:
    # User management
    can_manage_users: bool = False
    can_create_users: bool = False
    can_delete_users: bool = False
    can_import_users: bool = False
    # Settings
    can_access_settings: bool = False
    can_modify_settings: bool = False
    # Orders
    can_create_orders: bool = False
    can_edit_orders: bool = False
    can_delete_orders: bool = False
    can_advance_stage: bool = False
    can_archive_orders: bool = False
    # Stage areas
    can_access_sales_stages: bool = False
    can_access_production_stages: bool = False
    can_access_fulfillment_stages: bool = False
    # Reports
    can_view_reports: bool = False
    can_export_reports: bool = False
    # Views
    can_access_production_floor: bool = False
    can_access_fulfillment_tracking: bool = False
    # Art
    can_upload_art: bool = False
    can_approve_art: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


NO_PERMISSIONS = Permissions()
OWNER_PERMISSIONS = Permissions(**{f.name: True for f in fields(Permissions)})
ADMIN_PERMISSIONS = replace(OWNER_PERMISSIONS, can_delete_users=False, can_delete_orders=False)

OPERATOR_PERMISSIONS: dict[Role, Permissions] = {
    Role.SALES: Permissions(
        can_create_orders=True,
        can_edit_orders=True,
        can_advance_stage=True,
        can_access_sales_stages=True,
        can_upload_art=True,
        can_view_reports=True,
    ),
    Role.PRODUCTION: Permissions(
        can_edit_orders=True,
        can_advance_stage=True,
        can_access_production_stages=True,
        can_access_production_floor=True,
        can_upload_art=True,
        can_approve_art=True,
    ),
    Role.FULFILLMENT: Permissions(
        can_edit_orders=True,
        can_advance_stage=True,
        can_access_fulfillment_stages=True,
        can_access_fulfillment_tracking=True,
    ),
    Role.READ_ONLY: Permissions(
        can_view_reports=True,
        can_access_sales_stages=True,
        can_access_production_stages=True,
        can_access_fulfillment_stages=True,
        can_access_production_floor=True,
        can_access_fulfillment_tracking=True,
    ),
}

SALES_STAGES = (OrderStatus.LEAD, OrderStatus.QUOTE, OrderStatus.APPROVAL)
PRODUCTION_STAGES = (
    OrderStatus.ART_CONFIRMATION,
    OrderStatus.INVENTORY_ORDER,
    OrderStatus.PRODUCTION_PREP,
    OrderStatus.INVENTORY_RECEIVED,
    OrderStatus.PRODUCTION,
)
FULFILLMENT_STAGES = (
    OrderStatus.FULFILLMENT,
    OrderStatus.INVOICE,
    OrderStatus.CLOSEOUT,
    OrderStatus.CLOSED,
)


def permission_level(role: Role | str) -> PermissionLevel:
    if role == Role.ADMIN:
        return PermissionLevel.OWNER
    if role == Role.MANAGER:
        return PermissionLevel.ADMIN
    return PermissionLevel.OPERATOR


def get_permissions(user: CurrentUser | None) -> Permissions:
    """Resolve the permission set for user; no user gets nothing."""
    if user is None:
        return NO_PERMISSIONS
    level = permission_level(user.role)
    if level == PermissionLevel.OWNER:
        return OWNER_PERMISSIONS
    if level == PermissionLevel.ADMIN:
        return ADMIN_PERMISSIONS
    for role, permissions in OPERATOR_PERMISSIONS.items():
        if user.role == role:
            return permissions
    return NO_PERMISSIONS


def can_access_stage(user: CurrentUser | None, stage: OrderStatus | str) -> bool:
    permissions = get_permissions(user)
    label = status_label(stage)
    if label in {s.value for s in SALES_STAGES}:
        return permissions.can_access_sales_stages
    if label in {s.value for s in PRODUCTION_STAGES}:
        return permissions.can_access_production_stages
    if label in {s.value for s in FULFILLMENT_STAGES}:
        return permissions.can_access_fulfillment_stages
    return False


def require(user: CurrentUser | None, permission: str) -> None:
    """
    Check a single permission flag, e.g. require(user, "can_delete_orders").

    Raises:
        PermissionDeniedError: If the user lacks the permission.
    """
    if not getattr(get_permissions(user), permission):
        role = status_label(user.role) if user else "anonymous"
        action = permission.removeprefix("can_").replace("_", " ")
        raise PermissionDeniedError(role, action)
