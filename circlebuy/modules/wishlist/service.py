from supabase import Client
from circlebuy.modules.wishlist.schemas import WishlistItemResponse, WishlistResponse
from circlebuy.modules.cart.schemas import CartItemAdd, CartItemResponse, CartProduct
from circlebuy.modules.cart.service import CartService
from circlebuy.modules.products.service import ProductService
from circlebuy.core.errors import ProductNotFound, WishlistItemNotFound
from circlebuy.core.session import UserSession
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class WishlistService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _entry(self, user_id: str, product_id: str) -> dict:
        result = self.supabase.table("wishlist")\
            .select("*")\
            .eq("user_id", user_id)\
            .eq("product_id", product_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise WishlistItemNotFound()
        return result.data[0]

    def add(self, product_id: str, session: UserSession) -> WishlistItemResponse:
        """Save a product; saving it again keeps the original entry"""
        product = ProductService(self.supabase).get_product(product_id)
        if not product.is_active:
            raise ProductNotFound("Product is not available")
        self.supabase.table("wishlist").upsert(
            {"user_id": session.user_id, "product_id": product_id,
             "added_at": datetime.now(timezone.utc).isoformat()},
            on_conflict="user_id,product_id",
            ignore_duplicates=True
        ).execute()
        entry = self._entry(session.user_id, product_id)
        return WishlistItemResponse(**entry, product=CartProduct(**product.model_dump()))

    def get_wishlist(self, session: UserSession) -> WishlistResponse:
        rows = self.supabase.table("wishlist")\
            .select("*")\
            .eq("user_id", session.user_id)\
            .order("added_at", desc=True)\
            .execute().data or []
        products = {}
        if rows:
            products = {
                p["id"]: p for p in self.supabase.table("products")
                .select("id, name, price, image_url, is_active")
                .in_("id", [r["product_id"] for r in rows])
                .execute().data or []
            }
        items = [
            WishlistItemResponse(
                **row,
                product=CartProduct(**products[row["product_id"]]) if row["product_id"] in products else None
            )
            for row in rows
        ]
        return WishlistResponse(items=items, count=len(items))

    def remove(self, product_id: str, session: UserSession):
        result = self.supabase.table("wishlist")\
            .delete()\
            .eq("user_id", session.user_id)\
            .eq("product_id", product_id)\
            .execute()
        if not result.data:
            raise WishlistItemNotFound()

    def move_to_cart(self, product_id: str, session: UserSession) -> CartItemResponse:
        """Put one unit in the cart and drop the wishlist entry"""
        self._entry(session.user_id, product_id)
        item = CartService(self.supabase).add_item(CartItemAdd(product_id=product_id), session)
        self.remove(product_id, session)
        logger.info(f"User {session.user_id} moved {product_id} from wishlist to cart")
        return item
