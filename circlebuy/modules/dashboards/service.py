from supabase import Client
from circlebuy.modules.dashboards.schemas import (
    AdminDashboard, VendorDashboard, UserDashboard, RecentOrder
)
from circlebuy.modules.profiles.schemas import Role
from circlebuy.core.discounts import to_decimal
from circlebuy.core.session import UserSession
from collections import Counter
from decimal import Decimal
from typing import Callable, Dict, Union
import logging

logger = logging.getLogger(__name__)

AnyDashboard = Union[AdminDashboard, VendorDashboard, UserDashboard]


class DashboardService:
    """One summary per role. get_dashboard picks the builder from the caller's Role."""

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self._builders: Dict[Role, Callable[[UserSession], AnyDashboard]] = {
            Role.ADMIN: self.admin_dashboard,
            Role.VENDOR: self.vendor_dashboard,
            Role.USER: self.user_dashboard,
        }

    def _count(self, table: str, **filters) -> int:
        query = self.supabase.table(table).select("id", count="exact")
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().count or 0

    def get_dashboard(self, session: UserSession) -> AnyDashboard:
        return self._builders[session.role](session)

    def admin_dashboard(self, session: UserSession) -> AdminDashboard:
        orders = self.supabase.table("orders").select("total_amount").execute()
        categories = self.supabase.table("products").select("category").execute()
        return AdminDashboard(
            total_users=self._count("profiles"),
            total_products=self._count("products"),
            total_orders=self._count("orders"),
            total_revenue=sum((to_decimal(o["total_amount"]) for o in orders.data or []), Decimal("0.00")),
            pending_kyc=self._count("vendor_kyc", status="pending", is_active=True),
            total_groups=self._count("groups"),
            products_by_category=dict(Counter(p.get("category") or "uncategorized" for p in categories.data or []))
        )

    def vendor_dashboard(self, session: UserSession) -> VendorDashboard:
        products = self.supabase.table("products")\
            .select("id, is_active")\
            .eq("vendor_id", session.user_id)\
            .execute()
        product_ids = [p["id"] for p in products.data or []]

        kyc = self.supabase.table("vendor_kyc")\
            .select("status")\
            .eq("vendor_id", session.user_id)\
            .eq("is_active", True)\
            .limit(1)\
            .execute()

        groups_for_products = 0
        paid_items = []
        if product_ids:
            groups = self.supabase.table("groups")\
                .select("id", count="exact")\
                .in_("product_id", product_ids)\
                .execute()
            groups_for_products = groups.count or 0
            items = self.supabase.table("group_checkout_items")\
                .select("total_price")\
                .in_("product_id", product_ids)\
                .eq("payment_status", "paid")\
                .execute()
            paid_items = items.data or []

        return VendorDashboard(
            total_products=len(product_ids),
            active_products=sum(1 for p in products.data or [] if p.get("is_active")),
            kyc_status=kyc.data[0]["status"] if kyc.data else None,
            groups_for_products=groups_for_products,
            paid_group_items=len(paid_items),
            group_revenue=sum((to_decimal(i["total_price"]) for i in paid_items), Decimal("0.00"))
        )

    def user_dashboard(self, session: UserSession) -> UserDashboard:
        recent = self.supabase.table("orders")\
            .select("id, total_amount, status, created_at")\
            .eq("user_id", session.user_id)\
            .order("created_at", desc=True)\
            .limit(5)\
            .execute()
        return UserDashboard(
            cart_items=self._count("cart_items", user_id=session.user_id),
            total_orders=self._count("orders", user_id=session.user_id),
            groups_joined=self._count("group_members", user_id=session.user_id),
            pending_payments=self._count("group_checkout_items", user_id=session.user_id, payment_status="pending"),
            recent_orders=[RecentOrder(**o) for o in recent.data or []]
        )

