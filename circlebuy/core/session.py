from pydantic import BaseModel
from typing import Optional
from circlebuy.modules.profiles.schemas import Role


class UserSession(BaseModel):
    """Authenticated caller for one request. Built by get_current_session and passed explicitly to services."""
    user_id: str
    email: str
    role: Role = Role.USER
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == Role.VENDOR
