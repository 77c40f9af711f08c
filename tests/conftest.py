import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENCODE_KEY", "test-secret-key-for-wallet-verification")

import base58
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

from main import app
from app.core.jwt_utils import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.services.wallet_store import WalletStore
from app.models.wallet import WalletConnection, WalletNonce  # noqa: F401  registers the tables
from app.services.wallet_verification import WalletVerifier


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

ALICE_KEY = "0x" + "11" * 32
MALLORY_KEY = "0x" + "22" * 32


class FakeClock:
    """Controllable replacement for time.time"""

    def __init__(self, now: float = 1_763_461_800):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db_engine():
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory) -> TestClient:
    """Create a test client for the FastAPI application"""

    def override_get_db() -> Generator:
        """Override database dependency for testing"""
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(db_session) -> WalletStore:
    return WalletStore(db_session)


@pytest.fixture
def verifier(store, clock) -> WalletVerifier:
    return WalletVerifier(store, nonce_ttl_seconds=600, clock=clock)


@pytest.fixture
def rival_verifier(session_factory, clock) -> Generator[WalletVerifier, None, None]:
    """Verifier on its own session, acting as a concurrent request"""
    db = session_factory()
    try:
        yield WalletVerifier(WalletStore(db), nonce_ttl_seconds=600, clock=clock)
    finally:
        db.close()


@pytest.fixture
def alice():
    """EVM account that owns the wallet being linked"""
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def mallory():
    """EVM account that does not own the claimed wallet"""
    return Account.from_key(MALLORY_KEY)


@pytest.fixture
def sign_evm():
    def _sign(account, text: str) -> str:
        signed = account.sign_message(encode_defunct(text=text))
        return "0x" + bytes(signed.signature).hex()

    return _sign


@pytest.fixture
def solana_keypair():
    """(private key, base58 address) for a Solana style ED25519 wallet"""
    private_key = Ed25519PrivateKey.generate()
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return private_key, base58.b58encode(public_bytes).decode()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-1") -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
