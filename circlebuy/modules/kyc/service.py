from supabase import Client
from circlebuy.modules.kyc.schemas import KycSubmit, KycReview, KycResponse
from circlebuy.core.errors import CircleBuyError, KycNotFound
from circlebuy.core.session import UserSession
from datetime import datetime, timezone
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class KycService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _active_record(self, vendor_id: str) -> Optional[dict]:
        result = self.supabase.table("vendor_kyc")\
            .select("*")\
            .eq("vendor_id", vendor_id)\
            .eq("is_active", True)\
            .order("version", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def submit(self, kyc_data: KycSubmit, session: UserSession) -> KycResponse:
        """Submit KYC. A resubmission after rejection supersedes the previous record."""
        previous = self._active_record(session.user_id)
        if previous and previous["status"] == "pending":
            raise CircleBuyError("Your KYC is already under review", code="KYC_UNDER_REVIEW", http_status=409)
        if previous and previous["status"] == "approved":
            raise CircleBuyError("Your KYC is already approved", code="KYC_ALREADY_APPROVED", http_status=409)

        row = kyc_data.model_dump()
        row.update({
            "vendor_id": session.user_id,
            "status": "pending",
            "submitted_at": datetime.now(timezone.utc).isoformat(),
            "is_active": True,
            "version": previous["version"] + 1 if previous else 1,
            "submission_count": previous.get("submission_count", 1) + 1 if previous else 1,
            "previous_kyc_id": previous["id"] if previous else None
        })

        if previous:
            self.supabase.table("vendor_kyc")\
                .update({"is_active": False})\
                .eq("id", previous["id"])\
                .execute()

        result = self.supabase.table("vendor_kyc").insert(row).execute()
        logger.info(f"Vendor {session.user_id} submitted KYC version {row['version']}")
        return KycResponse(**result.data[0])

    def get_mine(self, session: UserSession) -> KycResponse:
        record = self._active_record(session.user_id)
        if not record:
            raise KycNotFound("You have not submitted KYC yet")
        return KycResponse(**record)

    def list_pending(self, limit: int = 50, offset: int = 0) -> List[KycResponse]:
        result = self.supabase.table("vendor_kyc")\
            .select("*")\
            .eq("status", "pending")\
            .eq("is_active", True)\
            .order("submitted_at")\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [KycResponse(**row) for row in result.data]

    def review(self, kyc_id: str, review: KycReview, session: UserSession) -> KycResponse:
        """Approve or reject a pending submission (admin only)"""
        result = self.supabase.table("vendor_kyc")\
            .select("*")\
            .eq("id", kyc_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise KycNotFound()
        record = result.data[0]
        if record["status"] != "pending" or not record.get("is_active", True):
            raise CircleBuyError("Only pending KYC submissions can be reviewed", code="KYC_NOT_PENDING", http_status=409)

        updated = self.supabase.table("vendor_kyc")\
            .update({
                "status": review.status,
                "rejection_reason": review.rejection_reason if review.status == "rejected" else None,
                "reviewed_at": datetime.now(timezone.utc).isoformat(),
                "reviewed_by": session.user_id
            })\
            .eq("id", kyc_id)\
            .execute()
        logger.info(f"KYC {kyc_id} {review.status} by {session.user_id}")
        return KycResponse(**updated.data[0])
