"""
Employee Roles
Role enumeration, permission matrix and per-role order queues.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class EmployeeRole(str, Enum):
    CALLCENTER = "callcenter"
    PACKER = "packer"
    WAREHOUSE = "warehouse"
    DELIVERYMAN = "deliveryman"
    INCHARGE = "incharge"
    ACCOUNTS = "accounts"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class EmployeePermissions(BaseModel):
    """Capabilities granted to a role."""

    canViewOrders: bool = True
    canConfirmOrders: bool = False
    canPackOrders: bool = False
    canAssignDelivery: bool = False
    canDeliverOrders: bool = False
    canCollectCash: bool = False
    canReceivePayments: bool = False
    canViewAnalytics: bool = False
    canManageEmployees: bool = False
    canAccessAdmin: bool = True


ROLE_PERMISSIONS: Dict[EmployeeRole, EmployeePermissions] = {
    EmployeeRole.CALLCENTER: EmployeePermissions(canConfirmOrders=True),
    EmployeeRole.PACKER: EmployeePermissions(canPackOrders=True),
    EmployeeRole.WAREHOUSE: EmployeePermissions(canAssignDelivery=True, canViewAnalytics=True),
    EmployeeRole.DELIVERYMAN: EmployeePermissions(canDeliverOrders=True, canCollectCash=True),
    EmployeeRole.INCHARGE: EmployeePermissions(
        canConfirmOrders=True,
        canPackOrders=True,
        canAssignDelivery=True,
        canDeliverOrders=True,
        canCollectCash=True,
        canReceivePayments=True,
        canViewAnalytics=True,
        canManageEmployees=True,
    ),
    EmployeeRole.ACCOUNTS: EmployeePermissions(canReceivePayments=True, canViewAnalytics=True),
}

# Statuses each role works from; None means every order
ROLE_ORDER_QUEUES: Dict[EmployeeRole, Optional[List[str]]] = {
    EmployeeRole.CALLCENTER: ["pending", "address_confirmed", "order_confirmed"],
    EmployeeRole.PACKER: ["order_confirmed", "packed"],
    EmployeeRole.WAREHOUSE: ["packed", "ready_for_delivery"],
    EmployeeRole.DELIVERYMAN: [
        "ready_for_delivery",
        "out_for_delivery",
        "delivered",
        "rescheduled",
        "failed_delivery",
    ],
    EmployeeRole.ACCOUNTS: None,
    EmployeeRole.INCHARGE: None,
}


def get_permissions(role: str) -> Optional[EmployeePermissions]:
    try:
        return ROLE_PERMISSIONS[EmployeeRole(role)]
    except ValueError:
        return None


def has_permission(role: str, permission: str) -> bool:
    """Check a named permission (e.g. ``canPackOrders``) for a role."""
    permissions = get_permissions(role)
    if permissions is None:
        return False
    return bool(getattr(permissions, permission, False))


def employee_profile(document: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the ``employee*`` user fields and attach the role's permissions."""
    permissions = get_permissions(document.get("employeeRole"))
    return {
        **document,
        "role": document.get("employeeRole"),
        "status": document.get("employeeStatus"),
        "assignedBy": document.get("employeeAssignedBy"),
        "assignedAt": document.get("employeeAssignedAt"),
        "suspendedBy": document.get("employeeSuspendedBy"),
        "suspendedAt": document.get("employeeSuspendedAt"),
        "suspensionReason": document.get("employeeSuspensionReason"),
        "performance": document.get("employeePerformance"),
        "permissions": permissions.model_dump() if permissions else None,
    }
