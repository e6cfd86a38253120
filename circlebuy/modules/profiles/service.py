from supabase import Client
from circlebuy.modules.profiles.schemas import ProfileUpdate, ProfileResponse, ProfileSummary, Role
from circlebuy.core.errors import ProfileNotFound
from circlebuy.core.storage import S3Storage
from datetime import datetime, timezone
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by user ID"""
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise ProfileNotFound()

        return ProfileResponse(**result.data[0])

    def get_summaries(self, user_ids: List[str]) -> Dict[str, ProfileSummary]:
        """Public name/avatar for a batch of users, keyed by id"""
        if not user_ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("id, full_name, avatar_url")\
            .in_("id", list(set(user_ids)))\
            .execute()
        return {row["id"]: ProfileSummary(**row) for row in result.data or []}

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update own profile"""
        update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if profile_data.full_name is not None:
            update_data["full_name"] = profile_data.full_name
        if profile_data.avatar_url is not None:
            update_data["avatar_url"] = profile_data.avatar_url

        result = self.supabase.table("profiles")\
            .update(update_data)\
            .eq("id", user_id)\
            .execute()

        if not result.data:
            raise ProfileNotFound()

        return ProfileResponse(**result.data[0])

    def set_role(self, user_id: str, role: Role) -> ProfileResponse:
        """Change a user's application role (admin only; caller must pass the service client)"""
        result = self.supabase.table("profiles")\
            .update({"role": role.value, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)\
            .execute()

        if not result.data:
            raise ProfileNotFound()

        logger.info(f"Set role of {user_id} to {role.value}")
        return ProfileResponse(**result.data[0])

    def upload_avatar(self, user_id: str, storage: S3Storage, content: bytes, content_type: str) -> ProfileResponse:
        url = storage.upload_image(content, f"avatars/{user_id}", content_type)
        return self.update_profile(user_id, ProfileUpdate(avatar_url=url))
