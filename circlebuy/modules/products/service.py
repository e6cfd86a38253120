from supabase import Client
from circlebuy.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductResponse,
    DiscountTierIn, DiscountTierResponse, ProductWithTiersResponse
)
from circlebuy.core.discounts import DiscountTier, tiers_from_rows, DEFAULT_TIERS
from circlebuy.core.errors import ProductNotFound, PermissionDenied, KycNotApproved
from circlebuy.core.session import UserSession
from circlebuy.core.storage import S3Storage
from datetime import datetime, timezone
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        vendor_id: Optional[str] = None,
        include_inactive: bool = False,
        limit: int = 20,
        offset: int = 0
    ) -> List[ProductResponse]:
        query = self.supabase.table("products").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        if category:
            query = query.eq("category", category)
        if vendor_id:
            query = query.eq("vendor_id", vendor_id)
        if search:
            query = query.ilike("name", f"%{search}%")
        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [ProductResponse(**p) for p in result.data]

    def get_product(self, product_id: str) -> ProductResponse:
        result = self.supabase.table("products")\
            .select("*")\
            .eq("id", product_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise ProductNotFound()
        return ProductResponse(**result.data[0])

    def get_tier_rows(self, product_id: str) -> List[dict]:
        result = self.supabase.table("product_discount_tiers")\
            .select("tier_number, members_required, discount_percentage")\
            .eq("product_id", product_id)\
            .order("tier_number")\
            .execute()
        return result.data or []

    def get_discount_tiers(self, product_id: str) -> List[DiscountTier]:
        """Tiers configured for the product, or the default 2/3/4 member ladder"""
        return tiers_from_rows(self.get_tier_rows(product_id))

    def get_product_with_tiers(self, product_id: str) -> ProductWithTiersResponse:
        product = self.get_product(product_id)
        rows = self.get_tier_rows(product_id)
        tiers = tiers_from_rows(rows)
        return ProductWithTiersResponse(
            **product.model_dump(),
            discount_tiers=[
                DiscountTierResponse(
                    tier_number=i,
                    members_required=t.members_required,
                    discount_percentage=t.percentage
                )
                for i, t in enumerate(tiers, start=1)
            ],
            uses_default_tiers=not rows
        )

    def _has_approved_kyc(self, vendor_id: str) -> bool:
        result = self.supabase.table("vendor_kyc")\
            .select("id")\
            .eq("vendor_id", vendor_id)\
            .eq("is_active", True)\
            .eq("status", "approved")\
            .limit(1)\
            .execute()
        return bool(result.data)

    def _check_owner(self, product: ProductResponse, session: UserSession):
        if not session.is_admin and product.vendor_id != session.user_id:
            raise PermissionDenied("You can only manage your own products")

    def create_product(self, product_data: ProductCreate, session: UserSession) -> ProductResponse:
        """Create a product for the calling vendor (requires approved KYC)"""
        if not session.is_admin and not self._has_approved_kyc(session.user_id):
            raise KycNotApproved()

        result = self.supabase.table("products").insert({
            "vendor_id": session.user_id,
            "name": product_data.name,
            "description": product_data.description,
            "price": float(product_data.price),
            "category": product_data.category,
            "stock_quantity": product_data.stock_quantity,
            "group_order_enabled": product_data.group_order_enabled,
            "is_active": True
        }).execute()

        logger.info(f"Vendor {session.user_id} created product {result.data[0]['id']}")
        return ProductResponse(**result.data[0])

    def update_product(self, product_id: str, product_data: ProductUpdate, session: UserSession) -> ProductResponse:
        product = self.get_product(product_id)
        self._check_owner(product, session)

        update_data = product_data.model_dump(exclude_unset=True, exclude_none=True)
        if "price" in update_data:
            update_data["price"] = float(update_data["price"])
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("products")\
            .update(update_data)\
            .eq("id", product_id)\
            .execute()
        if not result.data:
            raise ProductNotFound()
        return ProductResponse(**result.data[0])

    def set_active(self, product_id: str, is_active: bool) -> ProductResponse:
        """Activate or deactivate a listing (admin moderation)"""
        result = self.supabase.table("products")\
            .update({"is_active": is_active, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", product_id)\
            .execute()
        if not result.data:
            raise ProductNotFound()
        logger.info(f"Product {product_id} is_active={is_active}")
        return ProductResponse(**result.data[0])

    def set_discount_tiers(
        self, product_id: str, tiers_in: List[DiscountTierIn], session: UserSession
    ) -> ProductWithTiersResponse:
        """Replace the product's tier ladder. An empty list reverts to the default tiers."""
        product = self.get_product(product_id)
        self._check_owner(product, session)

        # Validates ranges before anything is written
        tiers = sorted(DiscountTier(t.members_required, t.discount_percentage) for t in tiers_in)

        self.supabase.table("product_discount_tiers")\
            .delete()\
            .eq("product_id", product_id)\
            .execute()
        if tiers:
            self.supabase.table("product_discount_tiers").insert([
                {
                    "product_id": product_id,
                    "tier_number": i,
                    "members_required": t.members_required,
                    "discount_percentage": float(t.percentage)
                }
                for i, t in enumerate(tiers, start=1)
            ]).execute()
        return self.get_product_with_tiers(product_id)

    def upload_image(
        self, product_id: str, storage: S3Storage, content: bytes, content_type: str, session: UserSession
    ) -> ProductResponse:
        product = self.get_product(product_id)
        self._check_owner(product, session)
        url = storage.upload_image(content, f"products/{product_id}", content_type)
        result = self.supabase.table("products")\
            .update({"image_url": url, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", product_id)\
            .execute()
        return ProductResponse(**result.data[0])
