"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (1 day), used for API calls
- Refresh token: longer-lived (7 days), used to get a new pair

Each kind is signed with its own secret, so a token of one kind can
never verify as the other. Claims: `_id` (user id), `iat`, `exp`, and a
random `jti` so two tokens minted in the same second still differ.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt


class TokenError(Exception):
    """Raised when token verification fails."""


def create_token(
    user_id: uuid.UUID | str,
    secret: str,
    expires_in: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Create a signed JWT for user_id valid for expires_in."""
    now = datetime.now(timezone.utc)
    payload = {
        "_id": str(user_id),
        "iat": now,
        "exp": now + expires_in,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
