"""
Group feature routes.

Reads compose a fresh ``GroupView`` per request and add the virtual
membership for global admins. Mutations commit first and are then recorded
in the activity log; a failed log write does not change the response.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from groupguard.core.database.engine import get_db
from groupguard.features.activity.recorder import ActivityRecorder, get_activity_recorder
from groupguard.features.groups.models import Group, GroupRole, MANAGER_ROLES
from groupguard.features.groups.schemas import GroupResponse, GroupUpdate, GroupView, MembershipView
from groupguard.features.permissions.dependencies import require_group_owner, require_group_roles
from groupguard.features.permissions.evaluator import can_manage_group, get_user_group_role, is_group_owner
from groupguard.features.permissions.virtual import with_virtual_membership
from groupguard.features.users.dependencies import get_current_user
from groupguard.features.users.models import User


router = APIRouter(tags=["groups"])

require_member = require_group_roles(GroupRole)
require_manager = require_group_roles(MANAGER_ROLES)


def build_group_response(group: Group, user: User) -> GroupResponse:
    view = with_virtual_membership(GroupView.model_validate(group), user)
    return GroupResponse(
        **view.model_dump(),
        current_user_role=get_user_group_role(user, view.members),
        can_manage=can_manage_group(user, view.members),
        is_owner=is_group_owner(user, view.members),
    )


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group: Annotated[Group, Depends(require_member)],
    user: Annotated[User, Depends(get_current_user)],
):
    """Get a group (members and global admins)."""
    return build_group_response(group, user)


@router.get("/{group_id}/members", response_model=list[MembershipView])
async def list_group_members(
    group: Annotated[Group, Depends(require_member)],
    user: Annotated[User, Depends(get_current_user)],
):
    """List group members, including the caller's virtual membership if any."""
    return list(with_virtual_membership(GroupView.model_validate(group), user).members)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    update_data: GroupUpdate,
    group: Annotated[Group, Depends(require_manager)],
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    recorder: Annotated[ActivityRecorder, Depends(get_activity_recorder)],
):
    """Update group information (owners, admins and global admins)."""
    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(group, field, value)

    await db.commit()
    await db.refresh(group)

    await recorder.log_group_updated(user.id, group.id, group.name, changes)
    return build_group_response(group, user)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group: Annotated[Group, Depends(require_group_owner)],
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    recorder: Annotated[ActivityRecorder, Depends(get_activity_recorder)],
):
    """Delete a group (owner or global admin)."""
    group_id, group_name = group.id, group.name
    await db.delete(group)
    await db.commit()

    await recorder.log_group_deleted(user.id, group_id, group_name)
