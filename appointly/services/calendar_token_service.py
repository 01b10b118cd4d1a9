import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from appointly.models.calendar_token import GoogleCalendarToken
from appointly.models.user import UserRole
from appointly.schemas.calendar import TokenStoreRequest
from appointly.utils.timeutils import ensure_utc, expires_at_from, utcnow


logger = logging.getLogger(__name__)


class CalendarTokenService:
    """Service class for stored Google Calendar tokens."""

    @staticmethod
    async def store_tokens(
        user_id: UUID,
        token_data: TokenStoreRequest,
        db: AsyncSession
    ) -> GoogleCalendarToken:
        """
        Insert or update the caller's tokens for one role.

        ``expires_at`` wins over ``expires_in``; with neither, the token is
        assumed to live for an hour.

        Args:
            user_id: Owner of the tokens.
            token_data: Tokens obtained by the client from Google.
            db: Database session.

        Returns:
            GoogleCalendarToken: Stored row.
        """
        if token_data.expires_at is not None:
            expires_at = ensure_utc(token_data.expires_at)
        else:
            expires_at = expires_at_from(token_data.expires_in)

        token = await CalendarTokenService.get_tokens(user_id, token_data.user_type, db)

        if token:
            token.access_token = token_data.access_token
            # Google only returns a refresh token on first consent
            if token_data.refresh_token:
                token.refresh_token = token_data.refresh_token
            token.token_type = token_data.token_type
            token.expires_at = expires_at
            token.updated_at = utcnow()
        else:
            token = GoogleCalendarToken(
                user_id=user_id,
                user_type=token_data.user_type,
                access_token=token_data.access_token,
                refresh_token=token_data.refresh_token,
                token_type=token_data.token_type,
                expires_at=expires_at,
            )
            db.add(token)

        await db.commit()
        await db.refresh(token)

        logger.info(f"Stored Google Calendar tokens for user {user_id} ({token_data.user_type.value})")
        return token

    @staticmethod
    async def get_tokens(
        user_id: UUID,
        user_type: UserRole,
        db: AsyncSession
    ) -> Optional[GoogleCalendarToken]:
        """Get the tokens a user stored for one role."""
        result = await db.execute(
            select(GoogleCalendarToken).where(
                GoogleCalendarToken.user_id == user_id,
                GoogleCalendarToken.user_type == user_type
            )
        )
        return result.scalars().first()

    @staticmethod
    async def get_user_tokens(user_id: UUID, db: AsyncSession) -> List[GoogleCalendarToken]:
        """Get every token row a user stored."""
        result = await db.execute(
            select(GoogleCalendarToken).where(GoogleCalendarToken.user_id == user_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_tokens_for_users(
        user_ids: Iterable[UUID],
        db: AsyncSession
    ) -> Dict[UUID, List[GoogleCalendarToken]]:
        """Get token rows for many users at once, keyed by user id."""
        user_ids = list(user_ids)
        tokens: Dict[UUID, List[GoogleCalendarToken]] = {}
        if not user_ids:
            return tokens

        result = await db.execute(
            select(GoogleCalendarToken).where(GoogleCalendarToken.user_id.in_(user_ids))
        )
        for token in result.scalars().all():
            tokens.setdefault(token.user_id, []).append(token)
        return tokens

    @staticmethod
    async def is_connected(user_id: UUID, db: AsyncSession) -> bool:
        """Check if the user has any unexpired token."""
        tokens = await CalendarTokenService.get_user_tokens(user_id, db)
        return any(not token.is_expired() for token in tokens)

    @staticmethod
    async def get_valid_access_token(
        user_id: UUID,
        db: AsyncSession,
        preferred_type: Optional[UserRole] = None
    ) -> Optional[str]:
        """
        Pick an unexpired access token for the user.

        The token stored for ``preferred_type`` is used when it is still
        valid; otherwise any other unexpired token. Expired tokens are never
        refreshed here.

        Returns:
            Optional[str]: Access token, or None if nothing usable is stored.
        """
        tokens = [t for t in await CalendarTokenService.get_user_tokens(user_id, db) if not t.is_expired()]
        if not tokens:
            return None

        for token in tokens:
            if token.user_type == preferred_type:
                return token.access_token
        return tokens[0].access_token
