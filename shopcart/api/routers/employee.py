"""
Employee order routes.
Work queues and fulfilment actions for store staff.
"""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_current_user, get_notification_service, get_sanity_client
from ..schemas.employee import (
    AssignDeliveryRequest,
    CollectCashRequest,
    EmployeeActionRequest,
    FailDeliveryRequest,
    RejectCashRequest,
    RescheduleRequest,
    SubmitCashRequest,
)
from ..services.employee_service import EmployeeOrderService
from ..services.notification_service import NotificationService
from ...clients import ClerkUser, SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/employee/orders", tags=["Employee"])


def get_employee_service(
    sanity: SanityClient = Depends(get_sanity_client),
    notifications: NotificationService = Depends(get_notification_service),
) -> EmployeeOrderService:
    return EmployeeOrderService(sanity, notifications)


@router.get("")
async def list_queue(
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    """Orders waiting on the caller's role, newest first."""
    orders = await service.orders_for_employee(user.id)
    return {"success": True, "orders": orders, "count": len(orders)}


@router.post("/{order_id}/confirm-address")
async def confirm_address(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.confirm_address(user.id, order_id, body.notes)


@router.post("/{order_id}/confirm")
async def confirm_order(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.confirm_order(user.id, order_id, body.notes)


@router.post("/{order_id}/pack")
async def pack_order(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.mark_packed(user.id, order_id, body.notes)


@router.post("/{order_id}/assign-delivery")
async def assign_delivery(
    order_id: str,
    body: AssignDeliveryRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.assign_deliveryman(user.id, order_id, body.deliveryman_id, body.notes)


@router.post("/{order_id}/start-delivery")
async def start_delivery(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.start_delivery(user.id, order_id, body.notes)


@router.post("/{order_id}/collect-cash")
async def collect_cash(
    order_id: str,
    body: CollectCashRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.collect_cash(user.id, order_id, body.amount)


@router.post("/{order_id}/deliver")
async def deliver_order(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.mark_delivered(user.id, order_id, body.notes)


@router.post("/{order_id}/reschedule")
async def reschedule_delivery(
    order_id: str,
    body: RescheduleRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.reschedule_delivery(user.id, order_id, body.new_date, body.reason)


@router.post("/{order_id}/fail-delivery")
async def fail_delivery(
    order_id: str,
    body: FailDeliveryRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.mark_delivery_failed(user.id, order_id, body.reason)


@router.post("/{order_id}/submit-cash")
async def submit_cash(
    order_id: str,
    body: SubmitCashRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.submit_cash_to_accounts(
        user.id, order_id, body.accounts_employee_id, body.notes
    )


@router.post("/{order_id}/receive-payment")
async def receive_payment(
    order_id: str,
    body: EmployeeActionRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.receive_payment(user.id, order_id, body.notes)


@router.post("/{order_id}/reject-cash")
async def reject_cash(
    order_id: str,
    body: RejectCashRequest,
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return await service.reject_cash_submission(user.id, order_id, body.reason)


@router.get("/accounts")
async def list_accounts_orders(
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    """Orders the accounts team reconciles: cash hand-overs and card payments."""
    orders = await service.orders_for_accounts(user.id)
    return {"success": True, "orders": orders, "count": len(orders)}


@router.get("/accounts/stats")
async def accounts_payment_stats(
    user: ClerkUser = Depends(get_current_user),
    service: EmployeeOrderService = Depends(get_employee_service),
):
    return {"success": True, "stats": await service.accounts_payment_stats(user.id)}
