"""
Wallet ownership verification protocol.

State machine per user:
    NoChallenge -> ChallengeIssued(nonce, expires_at) -> {Verified | Expired | Mismatched} -> NoChallenge

- issue_challenge() stores a fresh nonce (replacing any outstanding one) and returns the text to sign.
- verify() accepts a signature only while a challenge is outstanding and unexpired. On success the
  nonce is consumed and the binding upserted in one transaction; on mismatch nothing is written.

Each call is single shot: no retries, no state kept between calls beyond what the store holds.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.core import wallet_auth
from app.core.config import settings
from app.core.errors import (
    NonceExpired,
    NonceNotFound,
    SignatureMismatch,
    StorageError,
    WalletAlreadyLinked,
    WalletNotFound,
)
from app.models.wallet import WalletConnection
from app.services.wallet_store import WalletStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Challenge:
    nonce: str
    sign_text: str
    expires_at: int


class WalletVerifier:
    def __init__(
        self,
        store: WalletStore,
        nonce_ttl_seconds: int = settings.NONCE_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.nonce_ttl_seconds = nonce_ttl_seconds
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    def issue_challenge(self, user_id: str) -> Challenge:
        """
        Issue a new challenge for the user.

        Any earlier outstanding nonce for the same user is overwritten and stops verifying.

        Raises:
            StorageError: If the nonce could not be stored; no challenge is issued
        """
        nonce = wallet_auth.generate_nonce()
        now = self._now()
        expires_at = now + self.nonce_ttl_seconds
        self.store.put_nonce(user_id, nonce, created_at=now, expires_at=expires_at)
        logger.info("issued wallet challenge for user %s (nonce %s...)", user_id, nonce[:8])
        return Challenge(nonce=nonce, sign_text=wallet_auth.build_sign_text(nonce), expires_at=expires_at)

    def verify(
        self,
        user_id: str,
        address: str,
        signature: str,
        chain: str = wallet_auth.CHAIN_EVM,
        wallet_type: Optional[str] = None,
    ) -> WalletConnection:
        """
        Verify the signature over the user's outstanding challenge and record the binding.

        Args:
            user_id: Authenticated caller
            address: Claimed wallet address
            signature: Wallet signature over build_sign_text(nonce)
            chain: "evm" (default) or "solana"
            wallet_type: Optional client hint stored with the binding

        Returns:
            The verified WalletConnection

        Raises:
            ValidationError: Malformed address, signature or chain
            NonceNotFound: No outstanding challenge, or it was consumed concurrently
            NonceExpired: The challenge is past its expiry
            SignatureMismatch: The signer is not the claimed address
            WalletAlreadyLinked: Another user already verified this address, checked
                up front and enforced again by the store on insert
            StorageError: Any store failure; the binding is not reported as verified
        """
        chain = wallet_auth.check_chain(chain)
        address = wallet_auth.normalize_address(address, chain)
        signature = wallet_auth.validate_signature(signature, chain)

        record = self.store.get_nonce(user_id)
        if record is None:
            logger.warning("wallet verify without challenge for user %s", user_id)
            raise NonceNotFound()

        now = self._now()
        if record.expires_at < now:
            logger.warning("expired wallet challenge for user %s (nonce %s...)", user_id, record.nonce[:8])
            self.store.delete_nonce(user_id, record.nonce)
            raise NonceExpired()

        nonce = record.nonce
        message = wallet_auth.build_sign_text(nonce)
        if not wallet_auth.signer_matches(address, message, signature, chain):
            logger.warning("signature mismatch for user %s, address %s", user_id, address)
            raise SignatureMismatch()

        owner = self.store.find_conflicting_owner(address, user_id)
        if owner is not None:
            logger.warning("address %s already linked to another user (requested by %s)", address, user_id)
            raise WalletAlreadyLinked()

        if not self.store.consume_nonce(user_id, nonce):
            # lost the race against a concurrent verify or a newer challenge
            self.store.rollback()
            logger.warning("wallet challenge consumed concurrently for user %s", user_id)
            raise NonceNotFound()

        connection = self.store.upsert_connection(
            user_id,
            address,
            chain=chain,
            signature=signature,
            verified_at=now,
            wallet_type=wallet_type,
        )
        if connection is None:
            self.store.rollback()
            raise StorageError("Wallet binding was not stored")
        self.store.commit()

        logger.info("verified wallet %s (%s) for user %s", address, chain, user_id)
        return connection

    def list_wallets(self, user_id: str) -> List[WalletConnection]:
        return self.store.list_connections(user_id)

    def unlink_wallet(self, user_id: str, address: str, chain: str = wallet_auth.CHAIN_EVM) -> None:
        address = wallet_auth.normalize_address(address, chain)
        if not self.store.delete_connection(user_id, address):
            raise WalletNotFound()
        logger.info("unlinked wallet %s for user %s", address, user_id)
