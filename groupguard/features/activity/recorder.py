"""
Activity log writer.

``ActivityRecorder.record`` appends one entry in its own session, after the
action it describes has been committed. It never raises: a failed write is
reported on the ``groupguard.audit`` logger and the caller carries on. A
crash between the action and the append leaves the action unlogged; nothing
here retries or reconciles that.

The ``log_*`` helpers fix the action tag and build the metadata for the
common events, then delegate to ``record``.
"""
from typing import Any, Dict, Literal, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groupguard.core.database.engine import AsyncSessionLocal
from groupguard.core.errors import ErrorKind
from groupguard.features.activity.models import ActivityAction, ActivityLog
from groupguard.utils import get_logger, utcnow


log = get_logger(__name__)
# Operational channel for audit-trail problems
audit_log = get_logger("groupguard.audit")


class ActivityRecorder:
    """Best-effort writer for the activity log."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        user_id: Optional[str],
        action: ActivityAction,
        description: str,
        group_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        """
        Append an activity log entry.

        Args:
            user_id: Actor (None when there is no valid user, e.g. failed login)
            action: Action tag
            description: Human readable summary
            group_id: Group the action happened in
            metadata: Structured details

        Returns:
            The stored entry, or None if the write failed
        """
        try:
            async with self.session_factory() as session:
                entry = ActivityLog(
                    user_id=user_id or None,
                    group_id=group_id or None,
                    action=action,
                    description=description,
                    details=metadata,
                    timestamp=utcnow(),
                )
                session.add(entry)
                await session.commit()
                await session.refresh(entry)
        except Exception:
            tag = getattr(action, "value", action)
            audit_log.exception(
                f"[{ErrorKind.AUDIT_WRITE_FAILURE.value}] could not record {tag} "
                f"user={user_id} group={group_id}"
            )
            return None

        log.info(f"Activity: user={user_id} action={entry.action.value} group={group_id}")
        return entry

    # ========================================================================
    # Authentication events
    # ========================================================================

    async def log_user_registration(self, user_id: str, email: str, role: str, name: Optional[str] = None):
        return await self.record(
            user_id,
            ActivityAction.USER_REGISTERED,
            f"User registered with email {email}",
            metadata={"email": email, "name": name, "role": role},
        )

    async def log_user_login(
        self,
        user_id: str,
        email: str,
        method: Literal["password", "oauth"],
        provider: Optional[str] = None,
    ):
        return await self.record(
            user_id,
            ActivityAction.USER_LOGIN,
            f"User logged in via {'password' if method == 'password' else 'OAuth'}",
            metadata={"email": email, "loginMethod": method, "provider": provider},
        )

    async def log_login_failed(self, email: str, reason: str, ip_address: Optional[str] = None):
        return await self.record(
            None,
            ActivityAction.LOGIN_FAILED,
            f"Failed login for {email}",
            metadata={
                "email": email,
                "reason": reason,
                "ipAddress": ip_address,
                "timestamp": utcnow().isoformat(timespec="milliseconds") + "Z",
            },
        )

    async def log_password_reset_requested(self, user_id: str, email: str, ip_address: Optional[str] = None):
        return await self.record(
            user_id,
            ActivityAction.PASSWORD_RESET_REQUESTED,
            f"Password reset requested for {email}",
            metadata={"email": email, "ipAddress": ip_address},
        )

    async def log_password_reset_completed(self, user_id: str, email: str, ip_address: Optional[str] = None):
        return await self.record(
            user_id,
            ActivityAction.PASSWORD_RESET_COMPLETED,
            f"Password reset completed for {email}",
            metadata={"email": email, "ipAddress": ip_address},
        )

    # ========================================================================
    # Administration
    # ========================================================================

    async def log_admin_user_created(self, user_id: str, email: str, created_by: str, name: Optional[str] = None):
        return await self.record(
            user_id,
            ActivityAction.ADMIN_USER_CREATED,
            f"Account created by an administrator: {email}",
            metadata={"email": email, "name": name, "createdBy": created_by},
        )

    async def log_password_reset_by_admin(self, admin: Any, target: Any):
        """``admin`` and ``target`` are users (anything with id, email and name)."""
        return await self.record(
            admin.id,
            ActivityAction.ADMIN_PASSWORD_RESET_BY_ADMIN,
            f"Administrator {admin.email} reset the password of {target.email}",
            metadata={
                "resetBy": admin.id,
                "resetByEmail": admin.email,
                "targetUser": {"id": target.id, "email": target.email, "name": getattr(target, "name", None)},
            },
        )

    # ========================================================================
    # Groups and membership
    # ========================================================================

    async def log_group_created(self, user_id: str, group_id: str, group_name: str):
        return await self.record(
            user_id,
            ActivityAction.GROUP_CREATED,
            f'Created group "{group_name}"',
            group_id=group_id,
            metadata={"groupName": group_name},
        )

    async def log_group_updated(self, user_id: str, group_id: str, group_name: str, changes: Dict[str, Any]):
        return await self.record(
            user_id,
            ActivityAction.GROUP_UPDATED,
            f'Updated group "{group_name}"',
            group_id=group_id,
            metadata={"changes": changes},
        )

    async def log_group_deleted(self, user_id: str, group_id: str, group_name: str):
        # The group row is gone, so its id only survives in the metadata
        return await self.record(
            user_id,
            ActivityAction.GROUP_DELETED,
            f'Deleted group "{group_name}"',
            metadata={"groupId": group_id, "groupName": group_name},
        )

    async def log_member_added(self, user_id: str, group_id: str, member_id: str, member_email: str, role: str):
        return await self.record(
            user_id,
            ActivityAction.MEMBER_INVITED,
            f"Added {member_email} to the group as {role}",
            group_id=group_id,
            metadata={"memberEmail": member_email, "memberId": member_id, "role": role},
        )

    async def log_member_removed(self, user_id: str, group_id: str, member_id: str, member_email: str):
        return await self.record(
            user_id,
            ActivityAction.MEMBER_REMOVED,
            f"Removed {member_email} from the group",
            group_id=group_id,
            metadata={"removedMemberId": member_id, "removedMemberEmail": member_email},
        )

    async def log_member_role_updated(
        self, user_id: str, group_id: str, member_id: str, member_email: str, new_role: str
    ):
        return await self.record(
            user_id,
            ActivityAction.MEMBER_ROLE_UPDATED,
            f"Changed the role of {member_email} to {new_role}",
            group_id=group_id,
            metadata={"memberId": member_id, "memberEmail": member_email, "newRole": new_role},
        )

    async def log_ownership_transferred(self, user_id: str, group_id: str, previous_owner: Any, new_owner: Any):
        return await self.record(
            user_id,
            ActivityAction.OWNERSHIP_TRANSFERRED,
            f"Transferred ownership from {previous_owner.email} to {new_owner.email}",
            group_id=group_id,
            metadata={
                "previousOwnerId": previous_owner.id,
                "previousOwnerEmail": previous_owner.email,
                "newOwnerId": new_owner.id,
                "newOwnerEmail": new_owner.email,
            },
        )

    # ========================================================================
    # Scoring
    # ========================================================================

    async def log_score_recorded(
        self,
        user_id: str,
        group_id: str,
        score_record_id: str,
        target_user_id: str,
        rule_name: str,
        points: int,
        criteria: Any = None,
    ):
        return await self.record(
            user_id,
            ActivityAction.SCORE_RECORDED,
            f'Recorded {points} points for rule "{rule_name}"',
            group_id=group_id,
            metadata={
                "ruleName": rule_name,
                "points": points,
                "scoreRecordId": score_record_id,
                "targetUserId": target_user_id,
                "criteria": criteria,
            },
        )

    async def log_rule_created(
        self, user_id: str, rule_name: str, points: int, criteria: Any = None, group_id: Optional[str] = None
    ):
        return await self.record(
            user_id,
            ActivityAction.SCORING_RULE_CREATED,
            f'Created scoring rule "{rule_name}" with {points} points',
            group_id=group_id,
            metadata={"ruleName": rule_name, "points": points, "criteria": criteria},
        )

    async def log_rule_updated(self, user_id: str, rule_id: str, rule_name: str, changes: Dict[str, Any]):
        """A change carrying ``is_active`` is recorded as a toggle."""
        if "is_active" in changes:
            status = "activated" if changes["is_active"] else "deactivated"
            action = ActivityAction.SCORING_RULE_TOGGLED
            description = f'Scoring rule "{rule_name}" {status}'
        else:
            action = ActivityAction.SCORING_RULE_UPDATED
            description = f'Updated scoring rule "{rule_name}"'
        return await self.record(
            user_id,
            action,
            description,
            metadata={"ruleId": rule_id, "changes": changes},
        )

    async def log_rule_deleted(self, user_id: str, rule_id: str, rule_name: str, points: int):
        return await self.record(
            user_id,
            ActivityAction.SCORING_RULE_DELETED,
            f'Deleted scoring rule "{rule_name}"',
            metadata={"ruleId": rule_id, "ruleName": rule_name, "points": points},
        )


_recorder = ActivityRecorder(AsyncSessionLocal)


def get_activity_recorder() -> ActivityRecorder:
    """Dependency returning the recorder bound to the application's session factory."""
    return _recorder
