"""
Group and membership models.

Groups are created and joined elsewhere; this service reads them to decide
who may do what. Per group, roles are ordered OWNER > ADMIN > MEMBER.
"""
from datetime import datetime
import enum
from sqlalchemy import String, Text, Boolean, ForeignKey, DateTime, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupguard.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin
from groupguard.utils import utcnow


class GroupRole(str, enum.Enum):
    """Per-group authorization level."""
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


ROLE_RANK: dict[GroupRole, int] = {
    GroupRole.MEMBER: 0,
    GroupRole.ADMIN: 1,
    GroupRole.OWNER: 2,
}


def roles_at_least(minimum: GroupRole) -> frozenset[GroupRole]:
    """All group roles ranked at or above ``minimum``."""
    return frozenset(role for role, rank in ROLE_RANK.items() if rank >= ROLE_RANK[minimum])


MANAGER_ROLES = roles_at_least(GroupRole.ADMIN)


class Group(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """A group of users with per-group roles."""
    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_by_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    members: Mapped[list["GroupMembership"]] = relationship(
        "GroupMembership",
        back_populates="group",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GroupMembership.joined_at"
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name={self.name!r})>"


class GroupMembership(Base, UlidPrimaryKeyMixin):
    """
    A user's real membership in a group.

    At most one row exists per (user_id, group_id).
    """
    __tablename__ = "group_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_group_membership_user_group"),
    )

    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[GroupRole] = mapped_column(SQLEnum(GroupRole), default=GroupRole.MEMBER, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="memberships", lazy="selectin")  # type: ignore
    group: Mapped["Group"] = relationship("Group", back_populates="members", lazy="raise")

    def __repr__(self) -> str:
        return f"<GroupMembership(user_id={self.user_id}, group_id={self.group_id}, role={self.role})>"
