"""
persistence for wallet challenges and verified wallet bindings
tables:
    wallet_nonces: user_id (pk), nonce, created_at, expires_at
    wallet_connections: id, user_id, wallet_address, chain, wallet_type, verified,
                        verification_signature, verified_at, created_at
                        unique (user_id, wallet_address)
                        unique (wallet_address) where verified

Every SQLAlchemy failure is rolled back and re-raised as StorageError, except a
second verified owner for an address, which is re-raised as WalletAlreadyLinked.
consume_nonce and upsert_connection do not commit: the verifier commits them together.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Type

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StorageError, WalletAlreadyLinked, WalletAuthError
from app.models.wallet import WalletConnection, WalletNonce

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class WalletStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str, on_integrity: Optional[Type[WalletAuthError]] = None) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            if on_integrity is not None and isinstance(e, IntegrityError):
                logger.warning("wallet store %s rejected by constraint: %s", operation, e.orig)
                raise on_integrity() from e
            logger.error("wallet store %s failed: %s", operation, e)
            raise StorageError(f"Storage error during {operation}") from e

    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise StorageError(f"Unsupported database dialect for upsert: {dialect}")
        return insert(model)

    # --- nonces ---

    def put_nonce(self, user_id: str, nonce: str, created_at: int, expires_at: int) -> None:
        """Store the user's challenge, replacing any outstanding one."""
        with self._guard("put_nonce"):
            stmt = self._insert(WalletNonce).values(
                user_id=user_id, nonce=nonce, created_at=created_at, expires_at=expires_at
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[WalletNonce.user_id],
                set_={
                    "nonce": stmt.excluded.nonce,
                    "created_at": stmt.excluded.created_at,
                    "expires_at": stmt.excluded.expires_at,
                },
            )
            self.db.execute(stmt)
            self.db.commit()

    def get_nonce(self, user_id: str) -> Optional[WalletNonce]:
        with self._guard("get_nonce"):
            return (
                self.db.query(WalletNonce)
                .filter(WalletNonce.user_id == user_id)
                .populate_existing()
                .first()
            )

    def delete_nonce(self, user_id: str, nonce: str) -> bool:
        """Delete and commit the given nonce; a newer challenge for the user is left alone."""
        with self._guard("delete_nonce"):
            result = self.db.execute(
                delete(WalletNonce).where(WalletNonce.user_id == user_id, WalletNonce.nonce == nonce)
            )
            self.db.commit()
            return result.rowcount == 1

    def consume_nonce(self, user_id: str, nonce: str) -> bool:
        """
        Delete the nonce only if it is still the outstanding one for the user.

        Returns False when another request already consumed or replaced it.
        Not committed here.
        """
        with self._guard("consume_nonce"):
            result = self.db.execute(
                delete(WalletNonce).where(WalletNonce.user_id == user_id, WalletNonce.nonce == nonce)
            )
            return result.rowcount == 1

    # --- wallet connections ---

    def find_conflicting_owner(self, wallet_address: str, user_id: str) -> Optional[str]:
        """Return another user holding a verified binding for the address, if any."""
        with self._guard("find_conflicting_owner"):
            row = (
                self.db.query(WalletConnection.user_id)
                .filter(
                    WalletConnection.wallet_address == wallet_address,
                    WalletConnection.user_id != user_id,
                    WalletConnection.verified.is_(True),
                )
                .first()
            )
            return row.user_id if row else None

    def upsert_connection(
        self,
        user_id: str,
        wallet_address: str,
        chain: str,
        signature: str,
        verified_at: int,
        wallet_type: Optional[str] = None,
    ) -> WalletConnection:
        """
        Insert or refresh the verified binding for (user_id, wallet_address). Not committed here.

        Raises WalletAlreadyLinked when another user holds a verified binding for the address.
        """
        with self._guard("upsert_connection", on_integrity=WalletAlreadyLinked):
            stmt = self._insert(WalletConnection).values(
                user_id=user_id,
                wallet_address=wallet_address,
                chain=chain,
                wallet_type=wallet_type,
                verified=True,
                verification_signature=signature,
                verified_at=verified_at,
                created_at=verified_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[WalletConnection.user_id, WalletConnection.wallet_address],
                set_={
                    "chain": stmt.excluded.chain,
                    "wallet_type": stmt.excluded.wallet_type,
                    "verified": True,
                    "verification_signature": stmt.excluded.verification_signature,
                    "verified_at": stmt.excluded.verified_at,
                },
            )
            self.db.execute(stmt)
            return self.get_connection(user_id, wallet_address)

    def get_connection(self, user_id: str, wallet_address: str) -> Optional[WalletConnection]:
        with self._guard("get_connection"):
            return (
                self.db.query(WalletConnection)
                .filter(
                    WalletConnection.user_id == user_id,
                    WalletConnection.wallet_address == wallet_address,
                )
                .populate_existing()
                .first()
            )

    def list_connections(self, user_id: str) -> List[WalletConnection]:
        with self._guard("list_connections"):
            return (
                self.db.query(WalletConnection)
                .filter(WalletConnection.user_id == user_id)
                .order_by(WalletConnection.verified_at.desc(), WalletConnection.id.desc())
                .all()
            )

    def delete_connection(self, user_id: str, wallet_address: str) -> bool:
        with self._guard("delete_connection"):
            result = self.db.execute(
                delete(WalletConnection).where(
                    WalletConnection.user_id == user_id,
                    WalletConnection.wallet_address == wallet_address,
                )
            )
            self.db.commit()
            return result.rowcount > 0

    def commit(self) -> None:
        with self._guard("commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
