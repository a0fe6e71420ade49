"""Session cookie helpers.

Both cookies are HttpOnly, SameSite=Strict and (unless disabled for
local development) Secure; Max-Age matches the token's TTL.
"""

from fastapi import Response

from mediahub.auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE
from mediahub.auth.tokens import TokenPair
from mediahub.config import Settings


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": "strict",
        "path": "/",
    }


def set_session_cookies(response: Response, pair: TokenPair, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.set_cookie(
        ACCESS_COOKIE,
        pair.access_token,
        max_age=settings.access_token_max_age,
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=settings.refresh_token_max_age,
        **options,
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
