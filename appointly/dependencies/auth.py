from typing import Any, Dict
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.core.security import verify_token
from appointly.db.session import get_db
from appointly.models.user import UserProfile


# JWT Bearer token dependency
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Dependency returning the verified claims of the caller's bearer token.

    The ``sub`` claim is the identity provider's user id and must be a UUID.

    Raises:
        HTTPException: If the token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = verify_token(credentials.credentials)
    if not token_data or "sub" not in token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        token_data["sub"] = UUID(str(token_data["sub"]))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data


async def get_current_user_id(claims: Dict[str, Any] = Depends(get_token_claims)) -> UUID:
    """Dependency returning just the caller's user id."""
    return claims["sub"]


async def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
) -> UserProfile:
    """
    Dependency to get the caller's profile.

    Profiles are created on role selection, so a valid token can still
    belong to a user without one.

    Raises:
        HTTPException: If no profile exists for the token's user.
    """
    user = await db.get(UserProfile, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found. Select a role first",
        )

    return user
