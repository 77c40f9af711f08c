from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, Text, UniqueConstraint, text

from app.db.base import Base


class WalletNonce(Base):
    """Outstanding wallet challenge, at most one per user.

    Example:
    {
        "user_id": "550e8400-e29b-41d4-a716-446655440000",
        "nonce": "9f2c4e1a7b3d5f60a1b2c3d4e5f60718",
        "created_at": 1763461800,
        "expires_at": 1763462400
    }
    """

    __tablename__ = "wallet_nonces"

    user_id = Column(Text, primary_key=True)
    nonce = Column(Text, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False)


class WalletConnection(Base):
    """Verified binding between a user and a wallet address.

    Example:
    {
        "id": 1,
        "user_id": "550e8400-e29b-41d4-a716-446655440000",
        "wallet_address": "0xabc0000000000000000000000000000000000001",
        "chain": "evm",
        "wallet_type": "metamask",
        "verified": true,
        "verification_signature": "0x...",
        "verified_at": 1763461900,
        "created_at": 1763461900
    }
    """

    __tablename__ = "wallet_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "wallet_address", name="uq_wallet_connections_user_address"),
        # one verified owner per address
        Index(
            "uq_wallet_connections_verified_address",
            "wallet_address",
            unique=True,
            postgresql_where=text("verified"),
            sqlite_where=text("verified"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    wallet_address = Column(Text, nullable=False, index=True)  # lowercased for evm
    chain = Column(Text, nullable=False, default="evm")  # "evm", "solana"
    wallet_type = Column(Text, nullable=True)  # "metamask", "walletconnect", "phantom"
    verified = Column(Boolean, nullable=False, default=False)
    verification_signature = Column(Text, nullable=True)
    verified_at = Column(BigInteger, nullable=True)
    created_at = Column(BigInteger, nullable=False)
