"""
FastAPI dependencies guarding group routes.

The evaluator answers with booleans; these dependencies are the boundary
where a negative answer becomes PERMISSION_DENIED.
"""
from typing import Annotated, Iterable
from fastapi import Depends

from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.groups.dependencies import get_group_by_id
from groupguard.features.groups.models import Group, GroupRole
from groupguard.features.permissions.evaluator import (
    has_group_permission,
    is_global_admin,
    is_group_owner,
)
from groupguard.features.users.dependencies import get_current_user
from groupguard.features.users.models import User
from groupguard.utils import get_logger


log = get_logger(__name__)


def ensure_permission(granted: bool, detail: str = "Insufficient permissions") -> None:
    """Raise PERMISSION_DENIED unless ``granted``."""
    if not granted:
        raise AppError(ErrorKind.PERMISSION_DENIED, detail)


def require_group_roles(required_roles: Iterable[GroupRole]):
    """
    Dependency factory requiring one of ``required_roles`` in the path group.

    Global admins always pass.

    Usage:
        @router.patch("/{group_id}")
        async def update_group(
            group: Group = Depends(require_group_roles(MANAGER_ROLES))
        ):
            ...

    Raises:
        AppError: NOT_FOUND if the group is missing, PERMISSION_DENIED otherwise
    """
    roles = frozenset(required_roles)

    async def dependency(
        group: Annotated[Group, Depends(get_group_by_id)],
        user: Annotated[User, Depends(get_current_user)],
    ) -> Group:
        granted = has_group_permission(user, group.members, roles)
        log.debug(f"Group access user={user.id} group={group.id} roles={sorted(roles)} granted={granted}")
        ensure_permission(granted, "You do not have the required role in this group")
        return group

    return dependency


async def require_group_owner(
    group: Annotated[Group, Depends(get_group_by_id)],
    user: Annotated[User, Depends(get_current_user)],
) -> Group:
    """Require the real group owner, or a global admin acting with override authority."""
    ensure_permission(
        is_group_owner(user, group.members) or is_global_admin(user),
        "Only the group owner can perform this action",
    )
    return group
