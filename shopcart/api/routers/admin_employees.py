"""
Admin employee management routes.
Grant and revoke staff roles, suspend or reactivate employees, list the team.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_sanity_client, require_admin
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.employee import AssignRoleRequest, EmployeeStatusRequest
from ...clients import ClerkUser, SanityClient
from ...models.employee import EmployeeRole, EmployeeStatus, employee_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/employees", tags=["Admin"])

EMPLOYEE_FIELDS = """{
  _id, "userId": _id, clerkUserId, email, firstName, lastName,
  employeeRole, employeeStatus, employeeAssignedBy, employeeAssignedAt,
  employeeSuspendedBy, employeeSuspendedAt, employeeSuspensionReason,
  employeePerformance, createdAt, updatedAt
}"""
ALL_EMPLOYEES_QUERY = (
    f'*[_type == "user" && isEmployee == true] | order(employeeAssignedAt desc) {EMPLOYEE_FIELDS}'
)
EMPLOYEES_BY_ROLE_QUERY = (
    '*[_type == "user" && isEmployee == true && employeeRole == $role && employeeStatus == "active"]'
    f" | order(firstName asc) {EMPLOYEE_FIELDS}"
)
USER_QUERY = '*[_type == "user" && _id == $userId][0]{ _id, firstName, lastName, email, isEmployee }'


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _parse_role(value: Optional[str]) -> EmployeeRole:
    try:
        return EmployeeRole(value)
    except ValueError:
        raise InvalidRequestError("Invalid employee role")


async def _get_user(sanity: SanityClient, user_id: str) -> Dict[str, Any]:
    user = await sanity.fetch(USER_QUERY, {"userId": user_id})
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


@router.get("")
async def list_employees(
    role: Optional[str] = Query(None, description="Only active employees with this role"),
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    if role:
        documents = await sanity.fetch(EMPLOYEES_BY_ROLE_QUERY, {"role": _parse_role(role).value})
    else:
        documents = await sanity.fetch(ALL_EMPLOYEES_QUERY)
    employees = [employee_profile(doc) for doc in documents or []]
    return {"success": True, "employees": employees, "count": len(employees)}


@router.post("/{user_id}/role")
async def assign_role(
    user_id: str,
    body: AssignRoleRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Make a user an active employee with the given role."""
    role = _parse_role(body.role)
    user = await _get_user(sanity, user_id)

    now = _now()
    updated = await sanity.patch(
        user_id,
        set={
            "isEmployee": True,
            "employeeRole": role.value,
            "employeeStatus": EmployeeStatus.ACTIVE.value,
            "employeeAssignedBy": admin.email,
            "employeeAssignedAt": now,
            "updatedAt": now,
        },
    )

    name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip() or user.get("email")
    logger.info(f"Employee role {role.value} assigned to {user_id} by {admin.email}")
    return {
        "success": True,
        "message": f"Successfully assigned {role.value} role to {name}",
        "employee": employee_profile(updated),
    }


@router.delete("/{user_id}/role")
async def remove_role(
    user_id: str,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    await _get_user(sanity, user_id)
    await sanity.patch(
        user_id,
        set={
            "isEmployee": False,
            "employeeStatus": EmployeeStatus.INACTIVE.value,
            "updatedAt": _now(),
        },
        unset=["employeeRole"],
    )
    logger.info(f"Employee role removed from {user_id} by {admin.email}")
    return {"success": True, "message": "Employee role removed successfully"}


@router.patch("/{user_id}/status")
async def update_status(
    user_id: str,
    body: EmployeeStatusRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Change an employee's status.

    Suspensions record who suspended the employee, when and, if given, why.
    Employees that are not active cannot perform any order action.
    """
    try:
        status = EmployeeStatus(body.status)
    except ValueError:
        raise InvalidRequestError("Invalid employee status")

    await _get_user(sanity, user_id)

    now = _now()
    fields: Dict[str, Any] = {"employeeStatus": status.value, "updatedAt": now}
    if status == EmployeeStatus.SUSPENDED:
        fields["employeeSuspendedBy"] = admin.email
        fields["employeeSuspendedAt"] = now
        if body.reason:
            fields["employeeSuspensionReason"] = body.reason

    await sanity.patch(user_id, set=fields)
    logger.info(f"Employee {user_id} status -> {status.value} by {admin.email}")
    return {"success": True, "message": f"Employee status updated to {status.value}"}
