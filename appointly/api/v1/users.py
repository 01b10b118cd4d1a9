import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.db.session import get_db
from appointly.dependencies.auth import get_current_user, get_token_claims
from appointly.models.user import UserProfile
from appointly.schemas.user import RoleSelection, UserResponse
from appointly.services.user_service import UserService


logger = logging.getLogger(__name__)

users_router = APIRouter()


@users_router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserProfile = Depends(get_current_user)):
    """
    Get the authenticated user's profile.

    Returns:
        UserResponse: Profile, including the selected role.
    """
    return current_user


@users_router.post("/role", response_model=UserResponse)
async def select_role(
    selection: RoleSelection,
    claims: Dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db)
):
    """
    Pick buyer or seller for the authenticated user.

    Creates the profile on first call; choosing seller also creates the
    seller profile. Safe to call again to switch roles.

    Args:
        selection: Role and optional display name.
        claims: Verified token claims.
        db: Database session.

    Returns:
        UserResponse: Updated profile.
    """
    return await UserService.select_role(
        user_id=claims["sub"],
        email=claims.get("email"),
        role=selection.role,
        full_name=selection.full_name,
        db=db
    )
