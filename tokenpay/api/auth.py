"""TokenPay - Clerk authentication dependency."""

import logging
from typing import Annotated

from clerk_backend_api import AuthenticateRequestOptions, Clerk, authenticate_request
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tokenpay.core.config import get_settings
from tokenpay.db import get_db
from tokenpay.models.user import User

logger = logging.getLogger(__name__)


class ClerkAuth:
    """Clerk authentication handler.

    Verifies session tokens issued by Clerk and provisions the local user
    row on first sight.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self._secret_key = settings.clerk_secret_key
        self._client = Clerk(bearer_auth=settings.clerk_secret_key)

    def verify_token(self, request: Request) -> dict:
        """Verify the Clerk token on a request.

        Args:
            request: FastAPI request object

        Returns:
            Decoded token claims

        Raises:
            HTTPException: If the token is missing, invalid or expired
        """
        try:
            request_state = authenticate_request(
                request,
                AuthenticateRequestOptions(secret_key=self._secret_key),
            )
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Authentication failed: {e!s}",
            ) from e

        if not request_state.is_signed_in:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return request_state.payload or {}

    def get_user_info(self, clerk_id: str) -> dict[str, str | None]:
        """Fetch profile fields from the Clerk API.

        Args:
            clerk_id: Clerk user ID (e.g., user_xxx)

        Returns:
            Dict with email, username, first_name, last_name and phone
        """
        info: dict[str, str | None] = {
            "email": "",
            "username": None,
            "first_name": None,
            "last_name": None,
            "phone": None,
        }
        try:
            user = self._client.users.get(user_id=clerk_id)
        except Exception as e:
            logger.warning(f"Could not fetch Clerk profile for {clerk_id}: {e}")
            return info

        if user.email_addresses:
            primary = next(
                (e for e in user.email_addresses if e.id == user.primary_email_address_id),
                user.email_addresses[0],
            )
            info["email"] = primary.email_address
        if user.phone_numbers:
            info["phone"] = user.phone_numbers[0].phone_number
        info["username"] = user.username
        info["first_name"] = user.first_name
        info["last_name"] = user.last_name
        return info


# Singleton instance
_clerk_auth: ClerkAuth | None = None


def get_clerk_auth() -> ClerkAuth:
    """Get Clerk auth singleton."""
    global _clerk_auth
    if _clerk_auth is None:
        _clerk_auth = ClerkAuth()
    return _clerk_auth


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    clerk: Annotated[ClerkAuth, Depends(get_clerk_auth)],
) -> User:
    """FastAPI dependency to get the authenticated purchaser.

    Usage:
        @router.get("/balance")
        async def balance(user: CurrentUser):
            return user.tokens
    """
    claims = clerk.verify_token(request)

    clerk_id = claims.get("sub")
    if not clerk_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    result = await db.execute(select(User).where(User.clerk_id == clerk_id))
    user = result.scalar_one_or_none()

    if not user:
        info = clerk.get_user_info(clerk_id)
        user = User(clerk_id=clerk_id, **info)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Provisioned local user {user.id} for Clerk user {clerk_id}")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
