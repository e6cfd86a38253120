from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from circlebuy.database.supabase_client import get_supabase, get_service_supabase
from circlebuy.modules.profiles.schemas import ProfileUpdate, ProfileResponse, ProfileSummary, RoleUpdate, Role
from circlebuy.modules.profiles.service import ProfileService
from circlebuy.core.dependencies import get_current_session, require_role
from circlebuy.core.session import UserSession
from circlebuy.core.errors import ProfileNotFound
from circlebuy.core.storage import S3Storage, get_storage
from supabase import Client

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    session: UserSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(session.user_id)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    session: UserSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service)
):
    return service.update_profile(session.user_id, profile_data)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    session: UserSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service),
    storage: S3Storage = Depends(get_storage)
):
    """Upload an avatar image to the media bucket and store its public URL"""
    content = await file.read()
    try:
        return service.upload_avatar(session.user_id, storage, content, file.content_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{user_id}", response_model=ProfileSummary)
async def get_profile(
    user_id: str,
    session: UserSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service)
):
    """Public view of another user (name and avatar only)"""
    summaries = service.get_summaries([user_id])
    if user_id not in summaries:
        raise ProfileNotFound()
    return summaries[user_id]


@router.put("/{user_id}/role", response_model=ProfileResponse)
async def set_role(
    user_id: str,
    body: RoleUpdate,
    session: UserSession = Depends(require_role(Role.ADMIN)),
    admin_client: Client = Depends(get_service_supabase)
):
    """Grant or change a user's role (admin only)"""
    return ProfileService(admin_client).set_role(user_id, body.role)
