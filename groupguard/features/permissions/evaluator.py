"""
Group permission evaluation with the global-administrator override.

Every function here is pure, total and never raises. Inputs are whatever was
loaded for the current request: ``user`` is anything with ``id`` and
``global_role`` (or ``None`` for an anonymous caller) and ``memberships`` is
an iterable of objects with ``user_id`` and ``role``, so ORM rows and
``MembershipView`` values are interchangeable.

A real membership always wins over both virtual status and the global-admin
default.
"""
from typing import Any, Iterable, Optional

from groupguard.features.groups.models import GroupRole, MANAGER_ROLES
from groupguard.features.users.models import GlobalRole


def is_global_admin(user: Optional[Any]) -> bool:
    return user is not None and getattr(user, "global_role", None) == GlobalRole.ADMIN


def find_membership(user: Optional[Any], memberships: Iterable[Any]) -> Optional[Any]:
    """Return the caller's membership, or None."""
    if user is None:
        return None
    return next((m for m in memberships if m.user_id == user.id), None)


def has_group_permission(
    user: Optional[Any],
    memberships: Iterable[Any],
    required_roles: Iterable[GroupRole],
) -> bool:
    """
    True if the user is a global admin, or holds one of ``required_roles`` in the group.

    Args:
        user: Caller (None for anonymous)
        memberships: Memberships of the group being accessed
        required_roles: Roles that grant the permission

    Returns:
        Whether the permission is granted
    """
    if is_global_admin(user):
        return True

    membership = find_membership(user, memberships)
    if membership is None:
        return False

    return membership.role in frozenset(required_roles)


def can_manage_group(user: Optional[Any], memberships: Iterable[Any]) -> bool:
    """OWNER, ADMIN or global admin."""
    return has_group_permission(user, memberships, MANAGER_ROLES)


def is_group_owner(user: Optional[Any], memberships: Iterable[Any]) -> bool:
    """
    True only for a real OWNER membership.

    Always False for a global admin: override authority is not ownership.
    """
    if is_global_admin(user):
        return False

    membership = find_membership(user, memberships)
    return membership is not None and membership.role == GroupRole.OWNER


def get_user_group_role(user: Optional[Any], memberships: Iterable[Any]) -> GroupRole:
    """
    The user's effective role in a group.

    Real membership first, then ADMIN for a global admin, then MEMBER. The
    MEMBER fallback is for display and grants nothing.
    """
    membership = find_membership(user, memberships)
    if membership is not None:
        return membership.role

    if is_global_admin(user):
        return GroupRole.ADMIN

    return GroupRole.MEMBER


# Names exposed to callers outside this package
evaluate_permission = has_group_permission
get_effective_role = get_user_group_role
