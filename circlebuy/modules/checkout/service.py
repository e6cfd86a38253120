from supabase import Client
from circlebuy.modules.checkout.schemas import (
    CheckoutSessionResponse, CheckoutItemResponse, ShippingAddress, PaymentResult
)
from circlebuy.modules.products.service import ProductService
from circlebuy.core.dependencies import check_group_manager
from circlebuy.core.discounts import discount_percentage, apply_discount, to_decimal, CENTS
from circlebuy.core.errors import (
    CheckoutNotFound, CheckoutNotAllowed, InvalidPaymentTransition,
    PermissionDenied, ProductNotFound
)
from circlebuy.core.session import UserSession
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)

# paid is terminal; a failed payment may be retried
PAYMENT_TRANSITIONS = {
    "pending": {"paid", "failed"},
    "failed": {"paid", "failed"},
    "paid": set(),
}


def check_payment_transition(current: str, target: str):
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidPaymentTransition(current, target)


def totals_by_status(items: List[dict]) -> Dict[str, Decimal]:
    totals = {status: Decimal("0.00") for status in PAYMENT_TRANSITIONS}
    for item in items:
        totals[item["payment_status"]] = (
            totals.get(item["payment_status"], Decimal("0.00")) + to_decimal(item["total_price"])
        ).quantize(CENTS)
    return totals


class CheckoutService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.products = ProductService(supabase)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _open_session(self, group_id: str) -> bool:
        result = self.supabase.table("group_checkout_sessions")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("status", "member_payments")\
            .limit(1)\
            .execute()
        return bool(result.data)

    def start_group_checkout(self, group_id: str, quantity: int, session: UserSession) -> CheckoutSessionResponse:
        """Fix the group price at the final member count and open one payment item per member.

        Items are written one by one; a failed insert is logged and reported
        in failed_user_ids while the other members proceed.
        """
        group = check_group_manager(group_id, session, self.supabase)
        if not group.get("product_id"):
            raise CheckoutNotAllowed("This group has no product to check out")
        if self._open_session(group_id):
            raise CheckoutNotAllowed("A checkout is already in progress for this group")

        product = self.products.get_product(group["product_id"])
        if not product.is_active:
            raise ProductNotFound("Product is no longer available")

        members_result = self.supabase.table("group_members")\
            .select("user_id")\
            .eq("group_id", group_id)\
            .execute()
        member_ids = [m["user_id"] for m in members_result.data or []]
        if not member_ids:
            raise CheckoutNotAllowed("A group needs at least one member to check out")

        tiers = self.products.get_discount_tiers(product.id)
        percentage = discount_percentage(len(member_ids), tiers)
        unit_price = apply_discount(product.price, percentage)

        session_result = self.supabase.table("group_checkout_sessions").insert({
            "group_id": group_id,
            "product_id": product.id,
            "created_by": session.user_id,
            "member_count": len(member_ids),
            "quantity": quantity,
            "discount_percentage": float(percentage),
            "unit_price": float(unit_price),
            "status": "member_payments",
            "failed_user_ids": []
        }).execute()
        checkout = session_result.data[0]

        failed_user_ids = self._insert_items(checkout, member_ids)
        if failed_user_ids:
            checkout = self._set_failed(checkout["id"], failed_user_ids)

        logger.info(
            f"Checkout {checkout['id']} started for group {group_id}: "
            f"{len(member_ids)} members at {percentage}% off, {len(failed_user_ids)} failed"
        )
        return self._build_response(checkout)

    def _insert_items(self, checkout: dict, user_ids: List[str]) -> List[str]:
        """Write one pending item per user; returns the users whose insert failed."""
        quantity = checkout.get("quantity") or 1
        unit_price = to_decimal(checkout["unit_price"])
        total_price = (unit_price * quantity).quantize(CENTS)
        failed = []
        for user_id in user_ids:
            try:
                self.supabase.table("group_checkout_items").insert({
                    "session_id": checkout["id"],
                    "group_id": checkout["group_id"],
                    "user_id": user_id,
                    "product_id": checkout["product_id"],
                    "quantity": quantity,
                    "unit_price": float(unit_price),
                    "total_price": float(total_price),
                    "payment_status": "pending"
                }).execute()
            except Exception as e:
                logger.error(f"Checkout item for {user_id} in session {checkout['id']} failed: {e}")
                failed.append(user_id)
        return failed

    def _set_failed(self, session_id: str, failed_user_ids: List[str]) -> dict:
        result = self.supabase.table("group_checkout_sessions")\
            .update({"failed_user_ids": failed_user_ids})\
            .eq("id", session_id)\
            .execute()
        return result.data[0]

    def retry_failed_items(self, session_id: str, session: UserSession) -> CheckoutSessionResponse:
        """Re-run the item insert for members left without an item (creator or admin)"""
        checkout = self._fetch_session(session_id)
        check_group_manager(checkout["group_id"], session, self.supabase)
        if checkout["status"] != "member_payments":
            raise CheckoutNotAllowed("This checkout is no longer open")

        have_item = {i["user_id"] for i in self._items(session_id)}
        missing = [u for u in checkout.get("failed_user_ids") or [] if u not in have_item]
        still_failed = self._insert_items(checkout, missing) if missing else []
        checkout = self._set_failed(session_id, still_failed)
        logger.info(f"Checkout {session_id} retry: {len(missing) - len(still_failed)} of {len(missing)} items written")
        return self._build_response(checkout)

    def _fetch_session(self, session_id: str) -> dict:
        result = self.supabase.table("group_checkout_sessions")\
            .select("*")\
            .eq("id", session_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise CheckoutNotFound()
        return result.data[0]

    def _items(self, session_id: str) -> List[dict]:
        result = self.supabase.table("group_checkout_items")\
            .select("*")\
            .eq("session_id", session_id)\
            .execute()
        return result.data or []

    def _build_response(self, checkout: dict, items: List[dict] = None) -> CheckoutSessionResponse:
        items = self._items(checkout["id"]) if items is None else items
        return CheckoutSessionResponse(
            **checkout,
            items=[CheckoutItemResponse(**i) for i in items],
            totals_by_status=totals_by_status(items)
        )

    def get_checkout_session(self, session_id: str, session: UserSession) -> CheckoutSessionResponse:
        checkout = self._fetch_session(session_id)
        items = self._items(session_id)
        if not (
            session.is_admin
            or checkout["created_by"] == session.user_id
            or any(i["user_id"] == session.user_id for i in items)
        ):
            group = self.supabase.table("groups")\
                .select("creator_id")\
                .eq("id", checkout["group_id"])\
                .limit(1)\
                .execute()
            if not group.data or group.data[0]["creator_id"] != session.user_id:
                raise PermissionDenied("You are not part of this checkout")
        return self._build_response(checkout, items)

    def list_my_items(self, session: UserSession, payment_status: str = None) -> List[CheckoutItemResponse]:
        query = self.supabase.table("group_checkout_items")\
            .select("*")\
            .eq("user_id", session.user_id)
        if payment_status:
            query = query.eq("payment_status", payment_status)
        result = query.order("updated_at", desc=True).execute()
        return [CheckoutItemResponse(**i) for i in result.data or []]

    def _own_item(self, item_id: str, session: UserSession) -> dict:
        result = self.supabase.table("group_checkout_items")\
            .select("*")\
            .eq("id", item_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise CheckoutNotFound("Checkout item not found")
        item = result.data[0]
        if item["user_id"] != session.user_id:
            raise PermissionDenied("You can only manage your own checkout item")
        return item

    def update_shipping_address(
        self, item_id: str, address: ShippingAddress, session: UserSession
    ) -> CheckoutItemResponse:
        item = self._own_item(item_id, session)
        if item["payment_status"] == "paid":
            raise CheckoutNotAllowed("Shipping address cannot change after payment")
        result = self.supabase.table("group_checkout_items")\
            .update({"shipping_address": address.model_dump(), "updated_at": self._now()})\
            .eq("id", item_id)\
            .execute()
        return CheckoutItemResponse(**result.data[0])

    def record_payment_result(
        self, item_id: str, payment: PaymentResult, session: UserSession
    ) -> CheckoutItemResponse:
        """Record what the payment processor reported for one member's item"""
        item = self._own_item(item_id, session)
        check_payment_transition(item["payment_status"], payment.status)

        result = self.supabase.table("group_checkout_items")\
            .update({
                "payment_status": payment.status,
                "payment_reference": payment.payment_reference,
                "updated_at": self._now()
            })\
            .eq("id", item_id)\
            .execute()
        logger.info(f"Checkout item {item_id} payment {item['payment_status']} -> {payment.status}")

        if payment.status == "paid":
            self._complete_if_settled(item["session_id"])

        return CheckoutItemResponse(**result.data[0])

    def _complete_if_settled(self, session_id: str):
        # Every member counted at start needs a paid item, not just the items that exist
        checkout = self._fetch_session(session_id)
        items = self._items(session_id)
        if len(items) < checkout["member_count"]:
            return
        if all(i["payment_status"] == "paid" for i in items):
            self.supabase.table("group_checkout_sessions")\
                .update({"status": "completed"})\
                .eq("id", session_id)\
                .execute()
            logger.info(f"Checkout {session_id} completed")
