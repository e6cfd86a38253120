from supabase import Client
from circlebuy.modules.orders.schemas import OrderCreate, OrderResponse, OrderItemResponse
from circlebuy.modules.checkout.schemas import ShippingAddress, PaymentResult
from circlebuy.modules.checkout.service import check_payment_transition
from circlebuy.config import settings
from circlebuy.core.discounts import to_decimal, CENTS
from circlebuy.core.errors import (
    EmptyCart, InvalidOrderTransition, OrderNotFound, PermissionDenied, ProductNotFound
)
from circlebuy.core.session import UserSession
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
import secrets
import logging

logger = logging.getLogger(__name__)

# Fulfilment moves forward only; cancelled and delivered are terminal
ORDER_TRANSITIONS = {
    "pending": {"paid", "cancelled"},
    "paid": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}


def check_order_transition(current: str, target: str):
    if target not in ORDER_TRANSITIONS.get(current, set()):
        raise InvalidOrderTransition(current, target)


def generate_order_number() -> str:
    return f"CB{datetime.now(timezone.utc):%Y%m%d}-{secrets.token_hex(3).upper()}"


def address_line(address: ShippingAddress) -> str:
    parts = [address.full_name, address.line1, address.line2, address.city, address.state,
             address.postal_code, address.country]
    return ", ".join(p for p in parts if p)


class OrderService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def place_order(self, order_data: OrderCreate, session: UserSession) -> OrderResponse:
        """Turn the caller's cart into an order at current prices and empty the cart.

        The order row is written first; if its items can't be written it is
        deleted again so no order exists without lines.
        """
        cart = self.supabase.table("cart_items")\
            .select("product_id, quantity")\
            .eq("user_id", session.user_id)\
            .execute().data or []
        if not cart:
            raise EmptyCart()

        products = {
            p["id"]: p for p in self.supabase.table("products")
            .select("id, vendor_id, name, price, image_url, is_active")
            .in_("id", [c["product_id"] for c in cart])
            .execute().data or []
        }
        lines = []
        for entry in cart:
            product = products.get(entry["product_id"])
            if not product or not product.get("is_active"):
                name = product["name"] if product else entry["product_id"]
                raise ProductNotFound(f"{name} is no longer available; remove it from your cart")
            unit_price = to_decimal(product["price"]).quantize(CENTS)
            lines.append({
                "product_id": product["id"],
                "vendor_id": product["vendor_id"],
                "product_name": product["name"],
                "product_image_url": product.get("image_url"),
                "quantity": entry["quantity"],
                "unit_price": unit_price,
                "total_price": (unit_price * entry["quantity"]).quantize(CENTS),
            })

        subtotal = sum((line["total_price"] for line in lines), Decimal("0.00"))
        shipping = to_decimal(settings.shipping_fee).quantize(CENTS)
        order = self.supabase.table("orders").insert({
            "order_number": generate_order_number(),
            "user_id": session.user_id,
            "status": "pending",
            "payment_status": "pending",
            "subtotal_amount": float(subtotal),
            "shipping_amount": float(shipping),
            "total_amount": float(subtotal + shipping),
            "shipping_address": order_data.shipping_address.model_dump(),
            "shipping_address_text": address_line(order_data.shipping_address),
        }).execute().data[0]

        rows = [
            {**line, "order_id": order["id"],
             "unit_price": float(line["unit_price"]), "total_price": float(line["total_price"])}
            for line in lines
        ]
        try:
            items = self.supabase.table("order_items").insert(rows).execute().data
        except Exception:
            logger.error(f"Order items for {order['order_number']} failed, removing the order")
            self.supabase.table("order_items").delete().eq("order_id", order["id"]).execute()
            self.supabase.table("orders").delete().eq("id", order["id"]).execute()
            raise

        self.supabase.table("cart_items").delete().eq("user_id", session.user_id).execute()
        logger.info(f"Order {order['order_number']} placed by {session.user_id}: {len(rows)} lines, {subtotal + shipping}")
        return self._to_response(order, items)

    def _to_response(self, order: dict, items: List[dict]) -> OrderResponse:
        return OrderResponse(**order, items=[OrderItemResponse(**i) for i in items])

    def _items_by_order(self, order_ids: List[str], vendor_id: str = None) -> Dict[str, List[dict]]:
        grouped = {order_id: [] for order_id in order_ids}
        if not order_ids:
            return grouped
        query = self.supabase.table("order_items").select("*").in_("order_id", order_ids)
        if vendor_id:
            query = query.eq("vendor_id", vendor_id)
        for item in query.execute().data or []:
            grouped.setdefault(item["order_id"], []).append(item)
        return grouped

    def _fetch(self, order_id: str) -> dict:
        result = self.supabase.table("orders")\
            .select("*")\
            .eq("id", order_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise OrderNotFound()
        return result.data[0]

    def list_my_orders(self, session: UserSession, status: Optional[str] = None) -> List[OrderResponse]:
        query = self.supabase.table("orders").select("*").eq("user_id", session.user_id)
        if status:
            query = query.eq("status", status)
        orders = query.order("created_at", desc=True).execute().data or []
        items = self._items_by_order([o["id"] for o in orders])
        return [self._to_response(o, items[o["id"]]) for o in orders]

    def get_order(self, order_id: str, session: UserSession) -> OrderResponse:
        """Buyer and admins see every line; a vendor sees only their own lines."""
        order = self._fetch(order_id)
        if session.is_admin or order["user_id"] == session.user_id:
            return self._to_response(order, self._items_by_order([order_id])[order_id])
        vendor_items = self._items_by_order([order_id], vendor_id=session.user_id)[order_id]
        if not vendor_items:
            raise PermissionDenied("You are not part of this order")
        return self._to_response(order, vendor_items)

    def list_vendor_orders(
        self, session: UserSession, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[OrderResponse]:
        """Orders containing the vendor's products, each with only that vendor's lines.

        Admins get every order with all lines.
        """
        vendor_id = None if session.is_admin else session.user_id
        query = self.supabase.table("orders").select("*")
        if vendor_id:
            lines = self.supabase.table("order_items")\
                .select("order_id")\
                .eq("vendor_id", vendor_id)\
                .execute().data or []
            order_ids = sorted({line["order_id"] for line in lines})
            if not order_ids:
                return []
            query = query.in_("id", order_ids)
        if status:
            query = query.eq("status", status)
        orders = query.order("created_at", desc=True).limit(limit).offset(offset).execute().data or []
        items = self._items_by_order([o["id"] for o in orders], vendor_id=vendor_id)
        return [self._to_response(o, items[o["id"]]) for o in orders]

    def _update(self, order_id: str, changes: dict) -> dict:
        changes["updated_at"] = self._now()
        return self.supabase.table("orders")\
            .update(changes)\
            .eq("id", order_id)\
            .execute().data[0]

    def record_payment(self, order_id: str, payment: PaymentResult, session: UserSession) -> OrderResponse:
        """Record the processor's result for the buyer's order; a paid order moves to paid."""
        order = self._fetch(order_id)
        if order["user_id"] != session.user_id:
            raise PermissionDenied("You can only pay for your own order")
        if order["status"] == "cancelled":
            raise InvalidOrderTransition("cancelled", "paid")
        check_payment_transition(order["payment_status"], payment.status)

        changes = {"payment_status": payment.status, "payment_reference": payment.payment_reference}
        if payment.status == "paid":
            check_order_transition(order["status"], "paid")
            changes["status"] = "paid"
        order = self._update(order_id, changes)
        logger.info(f"Order {order['order_number']} payment -> {payment.status}")
        return self._to_response(order, self._items_by_order([order_id])[order_id])

    def cancel_order(self, order_id: str, session: UserSession) -> OrderResponse:
        """Buyer cancels before the order ships"""
        order = self._fetch(order_id)
        if order["user_id"] != session.user_id and not session.is_admin:
            raise PermissionDenied("You can only cancel your own order")
        check_order_transition(order["status"], "cancelled")
        order = self._update(order_id, {"status": "cancelled"})
        return self._to_response(order, self._items_by_order([order_id])[order_id])

    def update_status(self, order_id: str, status: str, session: UserSession) -> OrderResponse:
        """Fulfilment update by a vendor with lines in the order, or an admin"""
        order = self._fetch(order_id)
        vendor_id = None if session.is_admin else session.user_id
        items = self._items_by_order([order_id], vendor_id=vendor_id)[order_id]
        if vendor_id and not items:
            raise PermissionDenied("This order has none of your products")
        check_order_transition(order["status"], status)
        order = self._update(order_id, {"status": status})
        logger.info(f"Order {order['order_number']} -> {status} by {session.user_id}")
        return self._to_response(order, items)
