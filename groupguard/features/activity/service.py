"""
Activity log queries and the caller-facing write path.
"""
from typing import Any, Optional
from sqlalchemy import Select, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.activity.models import ActivityLog
from groupguard.features.activity.recorder import ActivityRecorder
from groupguard.features.activity.schemas import (
    ActivityCreate,
    ActivityFilters,
    ActivityLogEntry,
    ActivityPage,
    ActivityRecordResponse,
    ActorSummary,
    GroupSummary,
    PageInfo,
    PageRequest,
)
from groupguard.features.groups.models import Group, GroupMembership
from groupguard.features.permissions.evaluator import is_global_admin
from groupguard.features.users.models import User
from groupguard.utils import get_logger


log = get_logger(__name__)


def _filter_conditions(filters: ActivityFilters) -> list:
    conditions = []
    if filters.group_id:
        conditions.append(ActivityLog.group_id == filters.group_id)
    if filters.action:
        conditions.append(ActivityLog.action == filters.action)
    if filters.user_id:
        conditions.append(ActivityLog.user_id == filters.user_id)

    start, end = filters.timestamp_bounds()
    if start is not None:
        conditions.append(ActivityLog.timestamp >= start)
    if end is not None:
        conditions.append(ActivityLog.timestamp <= end)
    return conditions


def _entries_query() -> Select:
    """Log rows joined with the actor and group summary columns."""
    return (
        select(
            ActivityLog,
            User.name.label("user_name"),
            User.email.label("user_email"),
            Group.name.label("group_name"),
        )
        .outerjoin(User, User.id == ActivityLog.user_id)
        .outerjoin(Group, Group.id == ActivityLog.group_id)
    )


def _to_entry(row: Any) -> ActivityLogEntry:
    activity, user_name, user_email, group_name = row
    user = None
    if user_email is not None:
        user = ActorSummary(id=activity.user_id, name=user_name, email=user_email)
    group = None
    if group_name is not None:
        group = GroupSummary(id=activity.group_id, name=group_name)
    return ActivityLogEntry(
        id=activity.id,
        action=activity.action,
        description=activity.description,
        metadata=activity.details,
        timestamp=activity.timestamp,
        user=user,
        group=group,
    )


async def query_activity(
    db: AsyncSession,
    filters: ActivityFilters,
    page: PageRequest,
) -> ActivityPage:
    """
    Filtered, newest-first page of activity log entries.

    Args:
        db: Database session
        filters: Group, action, user and date-range filters
        page: Page number and size

    Returns:
        Entries for the page and pagination info
    """
    conditions = _filter_conditions(filters)

    count_stmt = select(func.count()).select_from(ActivityLog)
    if conditions:
        count_stmt = count_stmt.where(and_(*conditions))
    total_count = (await db.execute(count_stmt)).scalar_one()

    stmt = _entries_query()
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = (
        stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .offset(page.skip)
        .limit(page.limit)
    )
    rows = (await db.execute(stmt)).all()

    return ActivityPage(
        entries=[_to_entry(row) for row in rows],
        page_info=PageInfo.build(page, total_count),
    )


async def get_activity_entry(db: AsyncSession, entry_id: str) -> Optional[ActivityLogEntry]:
    row = (await db.execute(_entries_query().where(ActivityLog.id == entry_id))).first()
    return _to_entry(row) if row is not None else None


async def record_activity_for_caller(
    db: AsyncSession,
    recorder: ActivityRecorder,
    caller: User,
    payload: ActivityCreate,
) -> ActivityRecordResponse:
    """
    Record an entry on behalf of the authenticated caller.

    When a group is named, a caller who is not a global admin must hold a real
    membership in it. The check runs here, before the recorder is called.

    Raises:
        AppError: NOT_FOUND if the group does not exist, PERMISSION_DENIED if
            the caller is not a member
    """
    if payload.group_id:
        group = await db.get(Group, payload.group_id)
        if group is None:
            raise AppError(ErrorKind.NOT_FOUND, "Group not found")

        if not is_global_admin(caller):
            result = await db.execute(
                select(GroupMembership.id).where(
                    GroupMembership.group_id == payload.group_id,
                    GroupMembership.user_id == caller.id,
                )
            )
            if result.scalar_one_or_none() is None:
                log.info(f"Activity write denied: user={caller.id} is not a member of group={payload.group_id}")
                raise AppError(ErrorKind.PERMISSION_DENIED, "You do not have access to this group")

    stored = await recorder.record(
        caller.id,
        payload.action,
        payload.description,
        group_id=payload.group_id,
        metadata=payload.metadata,
    )
    if stored is None:
        return ActivityRecordResponse(recorded=False)

    return ActivityRecordResponse(recorded=True, entry=await get_activity_entry(db, stored.id))
