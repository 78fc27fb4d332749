"""
Pydantic schemas for group reads and updates.

``GroupView`` is the read model handed to callers. It is frozen and holds its
members as a tuple, so composing a new view never touches the one it was
built from.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from groupguard.features.groups.models import GroupRole
from groupguard.features.users.schemas import UserPublic


class MembershipView(BaseModel):
    """A group membership as seen by callers."""
    id: str
    user_id: str
    group_id: str
    role: GroupRole
    joined_at: datetime
    user: UserPublic | None = None
    is_virtual: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True)


class VirtualMembership(MembershipView):
    """Synthesized ADMIN membership for a global admin. Never persisted."""
    role: GroupRole = GroupRole.ADMIN
    is_virtual: bool = True


class GroupView(BaseModel):
    """Read-only group with its member list."""
    id: str
    name: str
    description: str | None = None
    is_active: bool = True
    created_by_id: str | None = None
    members: tuple[MembershipView, ...] = ()

    model_config = ConfigDict(from_attributes=True, frozen=True)


class GroupResponse(GroupView):
    """Group view plus the caller's effective standing in it."""
    current_user_role: GroupRole
    can_manage: bool
    is_owner: bool


class GroupUpdate(BaseModel):
    """Schema for updating group information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    is_active: bool | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "is_active")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("must not be null")
        return value
