from supabase import Client
from circlebuy.modules.cart.schemas import CartItemAdd, CartItemResponse, CartProduct, CartResponse
from circlebuy.modules.products.service import ProductService
from circlebuy.core.discounts import to_decimal, CENTS
from circlebuy.core.errors import CartItemNotFound, ProductNotFound
from circlebuy.core.session import UserSession
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def add_item(self, item: CartItemAdd, session: UserSession) -> CartItemResponse:
        """Add a product to the cart. Adding it again sets the quantity instead of duplicating the row."""
        product = ProductService(self.supabase).get_product(item.product_id)
        if not product.is_active:
            raise ProductNotFound("Product is not available")

        result = self.supabase.table("cart_items").upsert(
            {"user_id": session.user_id, "product_id": item.product_id, "quantity": item.quantity},
            on_conflict="user_id,product_id"
        ).execute()
        return CartItemResponse(**result.data[0])

    def get_cart(self, session: UserSession) -> CartResponse:
        result = self.supabase.table("cart_items")\
            .select("*")\
            .eq("user_id", session.user_id)\
            .order("created_at")\
            .execute()
        rows = result.data or []

        products = {}
        if rows:
            products_result = self.supabase.table("products")\
                .select("id, name, price, image_url, is_active")\
                .in_("id", list({r["product_id"] for r in rows}))\
                .execute()
            products = {p["id"]: p for p in products_result.data or []}

        items = []
        subtotal = Decimal("0.00")
        for row in rows:
            product = products.get(row["product_id"])
            line_total = None
            if product:
                line_total = (to_decimal(product["price"]) * row["quantity"]).quantize(CENTS)
                if product.get("is_active", True):
                    subtotal += line_total
            items.append(CartItemResponse(
                **row,
                product=CartProduct(**product) if product else None,
                line_total=line_total
            ))
        return CartResponse(items=items, subtotal=subtotal, item_count=sum(r["quantity"] for r in rows))

    def update_quantity(self, item_id: str, quantity: int, session: UserSession) -> CartItemResponse:
        result = self.supabase.table("cart_items")\
            .update({"quantity": quantity})\
            .eq("id", item_id)\
            .eq("user_id", session.user_id)\
            .execute()
        if not result.data:
            raise CartItemNotFound()
        return CartItemResponse(**result.data[0])

    def remove_item(self, item_id: str, session: UserSession):
        result = self.supabase.table("cart_items")\
            .delete()\
            .eq("id", item_id)\
            .eq("user_id", session.user_id)\
            .execute()
        if not result.data:
            raise CartItemNotFound()

    def clear(self, session: UserSession):
        self.supabase.table("cart_items")\
            .delete()\
            .eq("user_id", session.user_id)\
            .execute()
