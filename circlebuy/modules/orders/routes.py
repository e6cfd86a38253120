from fastapi import APIRouter, Depends, Query
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.orders.schemas import OrderCreate, OrderResponse, OrderStatus, OrderStatusUpdate
from circlebuy.modules.orders.service import OrderService
from circlebuy.modules.checkout.schemas import PaymentResult
from circlebuy.modules.profiles.schemas import Role
from circlebuy.core.dependencies import get_current_session, require_role
from circlebuy.core.session import UserSession
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(supabase: Client = Depends(get_supabase)) -> OrderService:
    return OrderService(supabase)


@router.post("", response_model=OrderResponse, status_code=201)
async def place_order(
    order_data: OrderCreate,
    session: UserSession = Depends(get_current_session),
    service: OrderService = Depends(get_order_service)
):
    """Check out the cart into an order"""
    return service.place_order(order_data, session)


@router.get("/mine", response_model=List[OrderResponse])
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    session: UserSession = Depends(get_current_session),
    service: OrderService = Depends(get_order_service)
):
    return service.list_my_orders(session, status)


@router.get("/vendor", response_model=List[OrderResponse])
async def list_vendor_orders(
    status: Optional[OrderStatus] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: OrderService = Depends(get_order_service)
):
    """Orders containing the vendor's products"""
    return service.list_vendor_orders(session, status, limit, offset)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    session: UserSession = Depends(get_current_session),
    service: OrderService = Depends(get_order_service)
):
    return service.get_order(order_id, session)


@router.post("/{order_id}/payment", response_model=OrderResponse)
async def record_payment(
    order_id: str,
    payment: PaymentResult,
    session: UserSession = Depends(get_current_session),
    service: OrderService = Depends(get_order_service)
):
    return service.record_payment(order_id, payment, session)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    session: UserSession = Depends(get_current_session),
    service: OrderService = Depends(get_order_service)
):
    return service.cancel_order(order_id, session)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: OrderService = Depends(get_order_service)
):
    """Move an order through fulfilment (vendor with lines in it, or admin)"""
    return service.update_status(order_id, body.status, session)
