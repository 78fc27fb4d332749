"""
FastAPI dependencies for authentication.
"""
from typing import Annotated
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groupguard.core.database.engine import get_db
from groupguard.core.errors import AppError, ErrorKind
from groupguard.features.users.models import User
from groupguard.features.users.auth import verify_jwt_token


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        AppError: AUTHENTICATION_REQUIRED when the token is missing or invalid,
            or the user is unknown or deactivated
    """
    if credentials is None:
        raise AppError(ErrorKind.AUTHENTICATION_REQUIRED)

    payload = verify_jwt_token(credentials.credentials)

    result = await db.execute(select(User).where(User.id == payload["sub"]))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise AppError(ErrorKind.AUTHENTICATION_REQUIRED, "Unknown or inactive user")

    return user
