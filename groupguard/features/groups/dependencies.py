"""
Group-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groupguard.core.database.engine import get_db
from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.groups.models import Group


async def get_group_by_id(
    group_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Group:
    """
    Get group (with its members) by ID or raise 404.

    Args:
        group_id: Group ULID
        db: Database session

    Returns:
        Group model

    Raises:
        AppError: NOT_FOUND if the group does not exist
    """
    result = await db.execute(select(Group).where(Group.id == group_id))
    group = result.scalar_one_or_none()

    if group is None:
        raise AppError(ErrorKind.NOT_FOUND, "Group not found")

    return group
