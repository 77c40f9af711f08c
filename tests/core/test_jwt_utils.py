import time

import jwt
import pytest

from app.core.config import settings
from app.core.dependencies import _extract_token, get_current_user_id
from app.core.errors import Unauthenticated
from app.core.jwt_utils import create_access_token, verify_token


class TestVerifyToken:
    """Test cases for bearer token verification"""

    def test_round_trip_returns_sub(self):
        payload = verify_token(create_access_token("user-1"))
        assert payload["sub"] == "user-1"
        assert payload["aud"] == settings.JWT_AUDIENCE

    def test_missing_token(self):
        with pytest.raises(Unauthenticated) as exc_info:
            verify_token("")
        assert exc_info.value.message == "Missing token"

    def test_expired_token(self):
        token = create_access_token("user-1", extra_claims={"exp": int(time.time()) - 10})
        with pytest.raises(Unauthenticated) as exc_info:
            verify_token(token)
        assert exc_info.value.message == "Token expired"

    def test_token_signed_with_other_key(self):
        token = jwt.encode(
            {"sub": "user-1", "aud": settings.JWT_AUDIENCE, "exp": int(time.time()) + 60},
            "another-secret",
            algorithm="HS256",
        )
        with pytest.raises(Unauthenticated) as exc_info:
            verify_token(token)
        assert exc_info.value.message == "Invalid token"

    def test_wrong_audience(self):
        token = create_access_token("user-1", extra_claims={"aud": "anon"})
        with pytest.raises(Unauthenticated):
            verify_token(token)

    def test_missing_sub(self):
        token = jwt.encode(
            {"aud": settings.JWT_AUDIENCE, "exp": int(time.time()) + 60},
            settings.ENCODE_KEY,
            algorithm=settings.ENCODE_ALGORITHM,
        )
        with pytest.raises(Unauthenticated) as exc_info:
            verify_token(token)
        assert exc_info.value.message == "Invalid token payload"

    def test_create_access_token_requires_user_id(self):
        with pytest.raises(ValueError):
            create_access_token("")


class TestAuthorizationHeader:
    """Test cases for Authorization header parsing"""

    def test_bearer_prefix(self):
        assert get_current_user_id(f"Bearer {create_access_token('user-1')}") == "user-1"

    def test_bare_token(self):
        assert get_current_user_id(create_access_token("user-2")) == "user-2"

    @pytest.mark.parametrize("header", [None, "", "Bearer   "])
    def test_missing_or_empty_header(self, header):
        with pytest.raises(Unauthenticated):
            _extract_token(header)
