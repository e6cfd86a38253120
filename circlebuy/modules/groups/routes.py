from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupDetailResponse, MemberResponse,
    AccessCodeJoin, JoinResult, JoinRequestResponse, ReviewResult,
    InviteCreate, InviteResult, InviteResponse, AccessCodeResponse,
    DiscountProgressResponse
)
from circlebuy.modules.groups.service import GroupService
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Create a buying group for a product; the creator becomes its first member"""
    return service.create_group(group_data, session)


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    mine: bool = False,
    product_id: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """List public groups, or with mine=true the groups you belong to"""
    return service.list_groups(session, mine=mine, product_id=product_id, limit=limit, offset=offset)


@router.get("/invites/mine", response_model=List[InviteResponse])
async def list_my_invites(
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Pending invites addressed to the caller's email"""
    return service.list_my_invites(session)


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.get_group_detail(group_id, session)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Update group settings (creator or admin)"""
    return service.update_group(group_id, group_data, session)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Delete group (creator or admin)"""
    service.delete_group(group_id, session)


@router.post("/{group_id}/join", response_model=JoinResult)
async def join_group(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Join directly, or file a join request when the group needs approval"""
    return service.join_group(group_id, session)


@router.post("/{group_id}/join-with-code", response_model=JoinResult)
async def join_with_access_code(
    group_id: str,
    body: AccessCodeJoin,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.join_with_access_code(group_id, body.access_code, session)


@router.post("/{group_id}/leave", response_model=JoinResult)
async def leave_group(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.leave_group(group_id, session)


@router.delete("/{group_id}/join-request", response_model=JoinResult)
async def cancel_join_request(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Withdraw the caller's pending join request"""
    return service.cancel_join_request(group_id, session)


@router.get("/{group_id}/members", response_model=List[MemberResponse])
async def list_members(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.list_members(group_id, session)


@router.get("/{group_id}/join-requests", response_model=List[JoinRequestResponse])
async def list_join_requests(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Pending join requests, oldest first (creator or admin)"""
    return service.list_join_requests(group_id, session)


@router.post("/{group_id}/join-requests/{request_id}/approve", response_model=ReviewResult)
async def approve_join_request(
    group_id: str,
    request_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.approve_join_request(group_id, request_id, session)


@router.post("/{group_id}/join-requests/{request_id}/reject", response_model=ReviewResult)
async def reject_join_request(
    group_id: str,
    request_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    return service.reject_join_request(group_id, request_id, session)


@router.post("/{group_id}/invites", response_model=InviteResult)
async def invite_members(
    group_id: str,
    body: InviteCreate,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Invite people by email (any member)"""
    return service.invite_members(group_id, body.emails, session)


@router.post("/{group_id}/access-code", response_model=AccessCodeResponse)
async def rotate_access_code(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Generate a new access code; the old one stops working"""
    return service.rotate_access_code(group_id, session)


@router.get("/{group_id}/discount", response_model=Optional[DiscountProgressResponse])
async def get_discount(
    group_id: str,
    session: UserSession = Depends(get_current_session),
    service: GroupService = Depends(get_group_service)
):
    """Current tier, discounted unit price and members needed for the next tier"""
    group = service.require_visible(group_id, session)
    return service.get_discount(group, service.count_members(group_id))
