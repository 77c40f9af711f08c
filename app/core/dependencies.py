"""
FastAPI Authentication and Storage Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to resolve the caller identity from the Authorization header and hand out the wallet store.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(user_id: str = Depends(get_current_user_id)):
        # user_id is automatically extracted from the JWT sub claim
        return {"user": user_id}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_user_id() dependency
3. _extract_token() extracts token from header
4. verify_token() validates the JWT (from jwt_utils.py)
5. Returns the user id to the route handler
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.errors import Unauthenticated
from app.core.jwt_utils import verify_token
from app.db.session import get_db
from app.services.wallet_store import WalletStore
from app.services.wallet_verification import WalletVerifier


def _extract_token(authorization: Optional[str]) -> Dict[str, Any]:
    """
    Extract JWT token from Authorization header.
    Supports both "Bearer <token>" and plain token formats.
    Args:
        authorization: The Authorization header value (e.g., "Bearer eyJ...")
    Returns:
        The decoded token payload
    Raises:
        Unauthenticated: If Authorization header is missing or invalid
    """
    if not authorization:
        raise Unauthenticated("Authorization header missing")

    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    else:
        token = authorization
    if not token:
        raise Unauthenticated("Invalid authorization header")

    return verify_token(token)


def get_current_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """
    returning the auth provider user id.
    """
    payload = _extract_token(authorization)
    return str(payload["sub"])


def get_wallet_store(db: Session = Depends(get_db)) -> WalletStore:
    return WalletStore(db)


def get_wallet_verifier(store: WalletStore = Depends(get_wallet_store)) -> WalletVerifier:
    return WalletVerifier(store)
