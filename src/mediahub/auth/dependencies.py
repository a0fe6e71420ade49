"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

The access token is looked up in two places, in order:
1. `accessToken` cookie (browser sessions)
2. `Authorization: Bearer <token>` header (API clients)

Every failure on this path is an Unauthorized: a missing credential,
a bad or expired token, or a user that no longer exists.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.tokens import TokenService
from mediahub.config import Settings
from mediahub.db.engine import get_db
from mediahub.errors import InternalFailure, Unauthorized
from mediahub.schemas.user import UserPublic
from mediahub.services.user_service import UserService

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TokenService:
    return TokenService(db, settings)


def extract_access_token(
    request: Request, authorization: Optional[str]
) -> Optional[str]:
    """Cookie first, then Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> UserPublic:
    """Resolve the request's access token to the user it belongs to."""
    token = extract_access_token(request, authorization)
    if not token:
        raise Unauthorized("Unauthorized")

    user_id = tokens.verify_access_token(token)

    try:
        user = await UserService(db, settings).get_public(user_id)
    except SQLAlchemyError as e:
        raise InternalFailure() from e

    if user is None:
        raise Unauthorized("Invalid access token")
    return user
