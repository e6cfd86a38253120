from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.kyc.schemas import KycSubmit, KycReview, KycResponse
from circlebuy.modules.kyc.service import KycService
from circlebuy.modules.profiles.schemas import Role
from circlebuy.core.dependencies import require_role
from circlebuy.core.session import UserSession
from supabase import Client
from typing import List

router = APIRouter(prefix="/kyc", tags=["kyc"])


def get_kyc_service(supabase: Client = Depends(get_supabase)) -> KycService:
    return KycService(supabase)


@router.post("", response_model=KycResponse, status_code=201)
async def submit_kyc(
    kyc_data: KycSubmit,
    session: UserSession = Depends(require_role(Role.VENDOR)),
    service: KycService = Depends(get_kyc_service)
):
    """Submit (or resubmit after rejection) vendor KYC"""
    return service.submit(kyc_data, session)


@router.get("/me", response_model=KycResponse)
async def get_my_kyc(
    session: UserSession = Depends(require_role(Role.VENDOR)),
    service: KycService = Depends(get_kyc_service)
):
    return service.get_mine(session)


@router.get("/pending", response_model=List[KycResponse])
async def list_pending_kyc(
    limit: int = 50,
    offset: int = 0,
    session: UserSession = Depends(require_role(Role.ADMIN)),
    service: KycService = Depends(get_kyc_service)
):
    return service.list_pending(limit=limit, offset=offset)


@router.put("/{kyc_id}/review", response_model=KycResponse)
async def review_kyc(
    kyc_id: str,
    review: KycReview,
    session: UserSession = Depends(require_role(Role.ADMIN)),
    service: KycService = Depends(get_kyc_service)
):
    """Approve or reject a KYC submission (admin only)"""
    return service.review(kyc_id, review, session)
