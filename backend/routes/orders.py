"""
Order endpoints — customer order form + admin lifecycle management.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from deps import get_order_service
from domain.responses import StandardErrorResponse, success_response
from models import (
    ConfirmPaymentRequest,
    CreateOrderRequest,
    CreatedOrder,
    MpesaInstructions,
    StatusUpdateRequest,
)
from services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["orders"])

_errors = {
    400: {"model": StandardErrorResponse},
    404: {"model": StandardErrorResponse},
    503: {"model": StandardErrorResponse},
}


@router.post("/create-order", responses=_errors)
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
):
    """Customer order form submission. Returns M-Pesa payment instructions."""
    order = await service.create_order(request.to_payload())
    created = CreatedOrder(
        id=order.id,
        service=order.service,
        price=order.price,
        status=order.status.value,
        created_at=order.created_at,
        mpesa_instructions=MpesaInstructions(**service.mpesa_instructions(order)),
    )
    return success_response(
        message="Order created successfully",
        order=created.model_dump(mode="json", by_alias=True),
    )


@router.post("/confirm-payment/{order_id}", responses=_errors)
async def confirm_payment(
    order_id: str,
    request: Optional[ConfirmPaymentRequest] = None,
    service: OrderService = Depends(get_order_service),
):
    """Admin marks a manual M-Pesa payment as received."""
    mpesa_code = request.mpesa_code if request else None
    order = await service.confirm_payment(order_id, mpesa_code=mpesa_code)
    return success_response(message="Payment confirmed successfully", order=order.to_record())


@router.get("/order/{order_id}", responses=_errors)
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id)
    return success_response(order=order.to_record())


@router.get("/orders")
async def list_orders(service: OrderService = Depends(get_order_service)):
    """All orders newest first, with dashboard summary counters."""
    orders = service.list_orders()
    return success_response(
        orders=[o.to_record() for o in orders],
        summary=service.summary(),
    )


@router.put("/order/{order_id}/status", responses=_errors)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        order_id,
        request.status,
        admin_notes=request.admin_notes,
        notify=request.notify_customer,
    )
    return success_response(message="Order status updated", order=order.to_record())


@router.delete("/order/{order_id}", responses=_errors)
async def delete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
):
    """Admin removes a mistaken order. Irreversible."""
    await service.delete_order(order_id)
    return success_response(message="Order deleted successfully")
