"""
Pydantic schemas for user-related responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from groupguard.features.users.models import GlobalRole


class UserPublic(BaseModel):
    """Public user fields, also used as the snapshot embedded in memberships."""
    id: str
    name: str | None = None
    email: str
    global_role: GlobalRole = GlobalRole.USER

    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserResponse(UserPublic):
    """Schema for the current user's own profile."""
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None
