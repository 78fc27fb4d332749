"""
Activity log model.

Append-only record of security- and state-relevant actions. Rows are created
once and never updated or deleted by application code.
"""
from datetime import datetime
from typing import Any, Dict
import enum
from sqlalchemy import String, Text, ForeignKey, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from groupguard.core.database.base import Base, UlidPrimaryKeyMixin
from groupguard.utils import utcnow


class ActivityAction(str, enum.Enum):
    """Action tags recorded in the activity log."""
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_COMPLETED = "PASSWORD_RESET_COMPLETED"
    ADMIN_USER_CREATED = "ADMIN_USER_CREATED"
    ADMIN_USER_ROLE_UPDATED = "ADMIN_USER_ROLE_UPDATED"
    ADMIN_USER_DELETED = "ADMIN_USER_DELETED"
    ADMIN_PASSWORD_RESET_BY_ADMIN = "ADMIN_PASSWORD_RESET_BY_ADMIN"
    GROUP_CREATED = "GROUP_CREATED"
    GROUP_UPDATED = "GROUP_UPDATED"
    GROUP_DELETED = "GROUP_DELETED"
    MEMBER_INVITED = "MEMBER_INVITED"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    MEMBER_ROLE_UPDATED = "MEMBER_ROLE_UPDATED"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    SCORING_RULE_CREATED = "SCORING_RULE_CREATED"
    SCORING_RULE_UPDATED = "SCORING_RULE_UPDATED"
    SCORING_RULE_TOGGLED = "SCORING_RULE_TOGGLED"
    SCORING_RULE_DELETED = "SCORING_RULE_DELETED"
    RULE_ADDED_TO_GROUP = "RULE_ADDED_TO_GROUP"
    RULE_REMOVED_FROM_GROUP = "RULE_REMOVED_FROM_GROUP"
    SCORE_RECORDED = "SCORE_RECORDED"
    SCORE_UPDATED = "SCORE_UPDATED"
    SCORE_DELETED = "SCORE_DELETED"


class ActivityLog(Base, UlidPrimaryKeyMixin):
    """
    One recorded action: who did what, in which group, and when.

    Timestamps are naive UTC.
    """
    __tablename__ = "activity_logs"

    # Actor (null for failed logins and for users that were later removed)
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    group_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    action: Mapped[ActivityAction] = mapped_column(SQLEnum(ActivityAction), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes, so the attribute is named details
    details: Mapped[Dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, user_id={self.user_id}, action={self.action}, group_id={self.group_id})>"
