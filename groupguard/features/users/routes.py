"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from groupguard.features.users.models import User
from groupguard.features.users.schemas import UserResponse
from groupguard.features.users.dependencies import get_current_user


router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user
