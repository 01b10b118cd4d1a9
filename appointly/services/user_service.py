import logging
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from appointly.models.seller import Seller
from appointly.models.user import UserProfile, UserRole


logger = logging.getLogger(__name__)


class UserService:
    """Service class for user profile operations."""

    @staticmethod
    async def select_role(
        user_id: UUID,
        email: Optional[str],
        role: UserRole,
        full_name: Optional[str],
        db: AsyncSession
    ) -> UserProfile:
        """
        Record the caller's role, creating their profile on first use.

        Picking the seller role also creates an empty seller profile so the
        user shows up in the directory once they fill it in.

        Args:
            user_id: Identity provider user id.
            email: Email claim from the caller's token.
            role: Selected role.
            full_name: Optional display name.
            db: Database session.

        Returns:
            UserProfile: Created or updated profile.

        Raises:
            HTTPException: If a new profile is needed but the token has no email.
        """
        user = await db.get(UserProfile, user_id)

        if not user:
            if not email:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Token has no email claim; cannot create profile",
                )
            user = UserProfile(id=user_id, email=email, full_name=full_name or "", role=role)
            db.add(user)
            logger.info(f"Created profile for user {user_id} with role {role.value}")
        else:
            user.role = role
            if full_name:
                user.full_name = full_name
            logger.info(f"Updated role for user {user_id} to {role.value}")

        if role == UserRole.SELLER:
            result = await db.execute(select(Seller).where(Seller.user_id == user_id))
            if not result.scalars().first():
                db.add(Seller(
                    user_id=user_id,
                    business_name="",
                    description="",
                    location="",
                    is_active=True,
                    availability_settings={},
                ))
                logger.info(f"Created seller profile for user {user_id}")

        await db.commit()
        await db.refresh(user)
        return user
