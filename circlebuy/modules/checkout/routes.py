from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.checkout.schemas import (
    CheckoutStart, CheckoutSessionResponse, CheckoutItemResponse,
    ShippingAddress, PaymentResult
)
from circlebuy.modules.checkout.service import CheckoutService
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from supabase import Client
from typing import List, Literal, Optional

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_checkout_service(supabase: Client = Depends(get_supabase)) -> CheckoutService:
    return CheckoutService(supabase)


@router.post("/groups/{group_id}", response_model=CheckoutSessionResponse, status_code=201)
async def start_group_checkout(
    group_id: str,
    body: Optional[CheckoutStart] = None,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Start group checkout at the current tier price (creator or admin)"""
    quantity = body.quantity if body else 1
    return service.start_group_checkout(group_id, quantity, session)


@router.get("/items/mine", response_model=List[CheckoutItemResponse])
async def list_my_items(
    payment_status: Optional[Literal["pending", "paid", "failed"]] = None,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    return service.list_my_items(session, payment_status)


@router.put("/items/{item_id}/shipping", response_model=CheckoutItemResponse)
async def update_shipping_address(
    item_id: str,
    address: ShippingAddress,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    return service.update_shipping_address(item_id, address, session)


@router.post("/items/{item_id}/payment", response_model=CheckoutItemResponse)
async def record_payment_result(
    item_id: str,
    payment: PaymentResult,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Record the processor's result for your item. A failed payment can be retried."""
    return service.record_payment_result(item_id, payment, session)


@router.get("/{session_id}", response_model=CheckoutSessionResponse)
async def get_checkout_session(
    session_id: str,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Checkout session with every member's item and totals by payment status"""
    return service.get_checkout_session(session_id, session)


@router.post("/{session_id}/retry", response_model=CheckoutSessionResponse)
async def retry_failed_items(
    session_id: str,
    session: UserSession = Depends(get_current_session),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Give members whose item insert failed their payment item (creator or admin)"""
    return service.retry_failed_items(session_id, session)
