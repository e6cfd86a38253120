"""
Request-scoped dependencies: caller identity and group-level authorization
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from circlebuy.database.supabase_client import get_supabase, get_service_supabase, get_auth_client_factory
from circlebuy.modules.auth.service import AuthService
from circlebuy.modules.profiles.schemas import Role
from circlebuy.core.session import UserSession
from circlebuy.core.errors import GroupNotFound, PermissionDenied
from supabase import Client
from typing import Any, Callable, Dict
import logging

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(description="Supabase access token")


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    admin_client: Client = Depends(get_service_supabase),
    client_factory: Callable[[], Client] = Depends(get_auth_client_factory)
) -> AuthService:
    return AuthService(supabase, admin_client, client_factory)


def get_bearer_token(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> str:
    return credentials.credentials


def _resolve_role(raw: Any, user_id: str) -> Role:
    try:
        return Role(raw or Role.USER.value)
    except ValueError:
        logger.warning(f"Unknown role {raw!r} on profile {user_id}; treating as user")
        return Role.USER


def get_current_session(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase)
) -> UserSession:
    """Verify the bearer token and load the caller's profile role."""
    user = auth_service.verify_token(token)
    rows = supabase.table("profiles")\
        .select("role, full_name, email")\
        .eq("id", user["id"])\
        .limit(1)\
        .execute().data
    profile = rows[0] if rows else {}
    return UserSession(
        user_id=user["id"],
        email=user.get("email") or profile.get("email") or "",
        role=_resolve_role(profile.get("role"), user["id"]),
        full_name=profile.get("full_name")
    )


def require_role(*roles: Role):
    """Factory function to create a role check dependency"""
    allowed = set(roles)

    def check_role(session: UserSession = Depends(get_current_session)) -> UserSession:
        if session.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role. Required one of: {', '.join(sorted(r.value for r in allowed))}"
            )
        return session
    return check_role


def fetch_group(group_id: str, supabase: Client) -> Dict[str, Any]:
    result = supabase.table("groups")\
        .select("*")\
        .eq("id", group_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise GroupNotFound()
    return result.data[0]


def is_group_member(group_id: str, user_id: str, supabase: Client) -> bool:
    result = supabase.table("group_members")\
        .select("id")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    return bool(result.data)


def check_group_manager(group_id: str, session: UserSession, supabase: Client) -> Dict[str, Any]:
    """Allow the group creator or an admin. Returns the group row."""
    group = fetch_group(group_id, supabase)
    if session.is_admin or group.get("creator_id") == session.user_id:
        return group
    raise PermissionDenied("Only the group creator can perform this action")


def check_group_member(group_id: str, session: UserSession, supabase: Client) -> Dict[str, Any]:
    """Allow members, the creator, or an admin. Returns the group row."""
    group = fetch_group(group_id, supabase)
    if session.is_admin or group.get("creator_id") == session.user_id:
        return group
    if is_group_member(group_id, session.user_id, supabase):
        return group
    raise PermissionDenied("You must be a member of this group")
