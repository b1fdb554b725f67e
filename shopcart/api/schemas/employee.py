"""
Employee order action schemas.
"""

from typing import Optional

from pydantic import Field

from .common import CamelModel


class EmployeeActionRequest(CamelModel):
    """Body shared by actions that only take free-text notes."""

    notes: Optional[str] = None


class AssignDeliveryRequest(EmployeeActionRequest):
    deliveryman_id: Optional[str] = None


class CollectCashRequest(EmployeeActionRequest):
    amount: float = Field(..., gt=0, allow_inf_nan=False)


class RescheduleRequest(CamelModel):
    new_date: Optional[str] = None
    reason: Optional[str] = None


class FailDeliveryRequest(CamelModel):
    reason: Optional[str] = None


class SubmitCashRequest(EmployeeActionRequest):
    accounts_employee_id: Optional[str] = None


class RejectCashRequest(CamelModel):
    reason: Optional[str] = None


class AssignRoleRequest(CamelModel):
    role: Optional[str] = Field(None, description="callcenter, packer, warehouse, deliveryman, incharge or accounts")


class EmployeeStatusRequest(CamelModel):
    status: Optional[str] = Field(None, description="active, inactive or suspended")
    reason: Optional[str] = None
