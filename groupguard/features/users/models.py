"""
User model with ULID primary keys.

Users are owned by the identity provider; this service only reads them.
"""
from datetime import datetime
import enum
from sqlalchemy import String, Boolean, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupguard.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class GlobalRole(str, enum.Enum):
    """Account-level role. ADMIN carries override authority across all groups."""
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    User model representing authenticated users.

    Uses ULID instead of auto-incrementing integers for better distributed systems support.
    """
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    global_role: Mapped[GlobalRole] = mapped_column(
        SQLEnum(GlobalRole),
        default=GlobalRole.USER,
        nullable=False,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Track last login
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    memberships: Mapped[list["GroupMembership"]] = relationship(  # type: ignore
        "GroupMembership",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, global_role={self.global_role})>"
