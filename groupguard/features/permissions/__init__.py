"""
Group-scoped permission evaluation.

Implements the role checks (with global-administrator override) and the
virtual membership view used by the group and activity features.
"""
from groupguard.features.permissions.evaluator import (  # noqa: F401
    is_global_admin,
    find_membership,
    has_group_permission,
    can_manage_group,
    is_group_owner,
    get_user_group_role,
    evaluate_permission,
    get_effective_role,
)
from groupguard.features.permissions.virtual import with_virtual_membership  # noqa: F401
