"""
Virtual membership for global administrators.

A global admin without a real membership in a group sees that group as if
they held an ADMIN membership. The synthesized entry only ever lives inside
the ``GroupView`` returned here.
"""
from typing import Any

from groupguard.features.groups.models import GroupRole
from groupguard.features.groups.schemas import GroupView, VirtualMembership
from groupguard.features.permissions.evaluator import find_membership, is_global_admin
from groupguard.features.users.schemas import UserPublic
from groupguard.utils import utcnow


def virtual_membership_id(user_id: str, group_id: str) -> str:
    return f"virtual-{user_id}-{group_id}"


def with_virtual_membership(group: GroupView, user: Any) -> GroupView:
    """
    Compose a view of ``group`` that includes a virtual ADMIN membership for ``user``.

    Returns ``group`` itself when the user is not a global admin or already
    appears in the member list. Otherwise returns a new view; ``group`` is
    left as it was, so repeated calls on the same original each add exactly
    one virtual entry.

    Args:
        group: Group view built from freshly loaded data
        user: Current caller

    Returns:
        The view to hand to the caller
    """
    if not is_global_admin(user):
        return group

    if find_membership(user, group.members) is not None:
        return group

    virtual = VirtualMembership(
        id=virtual_membership_id(user.id, group.id),
        user_id=user.id,
        group_id=group.id,
        role=GroupRole.ADMIN,
        joined_at=utcnow(),
        user=UserPublic.model_validate(user),
    )
    return group.model_copy(update={"members": (*group.members, virtual)})
