from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.wishlist.schemas import WishlistAdd, WishlistItemResponse, WishlistResponse
from circlebuy.modules.wishlist.service import WishlistService
from circlebuy.modules.cart.schemas import CartItemResponse
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from supabase import Client

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_wishlist_service(supabase: Client = Depends(get_supabase)) -> WishlistService:
    return WishlistService(supabase)


@router.get("", response_model=WishlistResponse)
async def get_wishlist(
    session: UserSession = Depends(get_current_session),
    service: WishlistService = Depends(get_wishlist_service)
):
    return service.get_wishlist(session)


@router.post("", response_model=WishlistItemResponse, status_code=201)
async def add_to_wishlist(
    body: WishlistAdd,
    session: UserSession = Depends(get_current_session),
    service: WishlistService = Depends(get_wishlist_service)
):
    return service.add(body.product_id, session)


@router.delete("/{product_id}", status_code=204)
async def remove_from_wishlist(
    product_id: str,
    session: UserSession = Depends(get_current_session),
    service: WishlistService = Depends(get_wishlist_service)
):
    service.remove(product_id, session)


@router.post("/{product_id}/cart", response_model=CartItemResponse, status_code=201)
async def move_to_cart(
    product_id: str,
    session: UserSession = Depends(get_current_session),
    service: WishlistService = Depends(get_wishlist_service)
):
    """Move a saved product into the cart"""
    return service.move_to_cart(product_id, session)
