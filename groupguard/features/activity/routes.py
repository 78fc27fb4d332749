"""
Activity log API routes.
"""
from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from groupguard.core import config
from groupguard.core.database.engine import get_db
from groupguard.core.errors import AppError, ErrorKind
from groupguard.core.rate_limit import rate_limit
from groupguard.features.activity.models import ActivityAction
from groupguard.features.activity.recorder import ActivityRecorder, get_activity_recorder
from groupguard.features.activity.schemas import (
    ActivityCreate,
    ActivityFilters,
    ActivityPage,
    ActivityRecordResponse,
    PageRequest,
)
from groupguard.features.activity.service import query_activity, record_activity_for_caller
from groupguard.features.users.dependencies import get_current_user
from groupguard.features.users.models import User


router = APIRouter(tags=["activity-logs"])


@router.get("/", response_model=ActivityPage)
async def list_activity(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    groupId: Optional[str] = None,
    action: Optional[ActivityAction] = None,
    userId: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[date] = None,
    page: int = 1,
    limit: int = 20,
):
    """List activity log entries, newest first. Any authenticated user may read the log."""
    try:
        filters = ActivityFilters(
            group_id=groupId,
            action=action,
            user_id=userId,
            start_date=startDate,
            end_date=endDate,
        )
        page_request = PageRequest(page=page, limit=limit)
    except ValidationError as e:
        raise AppError(
            ErrorKind.VALIDATION_ERROR,
            [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
        )

    return await query_activity(db, filters, page_request)


@router.post(
    "/",
    response_model=ActivityRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(config.ACTIVITY_WRITE_RATE_LIMIT, "activity-write"))],
)
async def create_activity(
    payload: ActivityCreate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    recorder: Annotated[ActivityRecorder, Depends(get_activity_recorder)],
):
    """Record an activity entry as the current user."""
    return await record_activity_for_caller(db, recorder, user, payload)
