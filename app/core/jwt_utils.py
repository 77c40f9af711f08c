"""
JWT Token Utilities

Bearer tokens are issued by the external auth provider (HS256, signed with the project JWT secret).
This module only verifies them and extracts the caller identity from the ``sub`` claim.

Flow:
1. User signs in with the auth provider -> frontend holds an access token
2. User calls a wallet endpoint with Authorization: Bearer <token> -> verify_token() validates it
3. Wallet endpoints use get_current_user_id() from dependencies.py to obtain the user id

create_access_token() mints a compatible token; it exists for local development and tests.

The JWT contains:
- sub: The auth provider user id
- aud: "authenticated" (configurable via JWT_AUDIENCE)
- iat / exp: Issued at and expiration timestamps
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from app.core.config import settings
from app.core.errors import Unauthenticated


if not settings.ENCODE_KEY:
    raise RuntimeError("ENCODE_KEY is not configured")


def create_access_token(user_id: str, extra_claims: Optional[Dict[str, Any]] = None) -> str:
    """
    Create a JWT access token shaped like the auth provider's tokens.

    Args:
        user_id: The user id placed in the ``sub`` claim
        extra_claims: Optional additional claims to include in the JWT payload

    Returns:
        A JWT token string that can be used in Authorization: Bearer <token> header

    Raises:
        ValueError: If user_id is empty
    """
    if not user_id:
        raise ValueError("user_id is required")

    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)).timestamp()),
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(payload, settings.ENCODE_KEY, algorithm=settings.ENCODE_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a bearer token.

    Checks token signature, expiration, audience and the ``sub`` claim.

    Args:
        token: The JWT token string from Authorization header

    Returns:
        Decoded JWT payload dictionary containing sub and other claims

    Raises:
        Unauthenticated: If token is missing, expired, invalid, or missing sub
    """
    if not token:
        raise Unauthenticated("Missing token")

    try:
        payload = jwt.decode(
            token,
            settings.ENCODE_KEY,
            algorithms=[settings.ENCODE_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": bool(settings.JWT_AUDIENCE)},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")

    if not payload.get("sub"):
        raise Unauthenticated("Invalid token payload")

    return payload
