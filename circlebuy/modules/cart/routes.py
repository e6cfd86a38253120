from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.cart.schemas import CartItemAdd, CartItemUpdate, CartItemResponse, CartResponse
from circlebuy.modules.cart.service import CartService
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from supabase import Client

router = APIRouter(prefix="/cart", tags=["cart"])


def get_cart_service(supabase: Client = Depends(get_supabase)) -> CartService:
    return CartService(supabase)


@router.get("", response_model=CartResponse)
async def get_cart(
    session: UserSession = Depends(get_current_session),
    service: CartService = Depends(get_cart_service)
):
    return service.get_cart(session)


@router.post("", response_model=CartItemResponse, status_code=201)
async def add_to_cart(
    item: CartItemAdd,
    session: UserSession = Depends(get_current_session),
    service: CartService = Depends(get_cart_service)
):
    return service.add_item(item, session)


@router.put("/{item_id}", response_model=CartItemResponse)
async def update_cart_item(
    item_id: str,
    body: CartItemUpdate,
    session: UserSession = Depends(get_current_session),
    service: CartService = Depends(get_cart_service)
):
    return service.update_quantity(item_id, body.quantity, session)


@router.delete("/{item_id}", status_code=204)
async def remove_cart_item(
    item_id: str,
    session: UserSession = Depends(get_current_session),
    service: CartService = Depends(get_cart_service)
):
    service.remove_item(item_id, session)


@router.delete("", status_code=204)
async def clear_cart(
    session: UserSession = Depends(get_current_session),
    service: CartService = Depends(get_cart_service)
):
    service.clear(session)
