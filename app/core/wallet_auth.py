"""
Wallet Ownership Cryptography

This module holds the pure, storage-free parts of the wallet verification protocol.

Verification Flow:
1. Backend generates a random nonce -> generate_nonce()
2. Backend builds the text the wallet must sign -> build_sign_text()
3. Frontend signs that exact text (EVM personal_sign / Solana signMessage)
4. Backend rebuilds the same text from the stored nonce and checks the signer -> signer_matches()

Supported chains:
- evm: EIP-191 personal_sign over secp256k1, signer recovered with eth_account
- solana: ED25519 detached signature, address is the base58 public key (cryptography library)

build_sign_text() is the only place the message is templated. Issuance and verification both
call it, so the signed text can never drift between the two.
"""

import base64
import binascii
import re
import secrets

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from eth_account import Account
from eth_account.messages import encode_defunct

from app.core.errors import ValidationError


NONCE_NUM_BYTES = 16  # 16 bytes = 128 bits = 32 hex characters

CHAIN_EVM = "evm"
CHAIN_SOLANA = "solana"
SUPPORTED_CHAINS = (CHAIN_EVM, CHAIN_SOLANA)

SIGN_TEXT_TEMPLATE = (
    "Biz Maze wants you to verify ownership of this wallet.\n"
    "\n"
    "Signing this message does not send a transaction or cost any gas.\n"
    "\n"
    "Nonce: {nonce}"
)

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_EVM_SIGNATURE_RE = re.compile(r"^0x[0-9a-fA-F]{130}$")

SOLANA_PUBLIC_KEY_BYTES = 32
SOLANA_SIGNATURE_BYTES = 64


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce for a wallet challenge.

    Args:
        num_bytes: Number of random bytes to generate (default: 16 = 32 hex chars)

    Returns:
        Hex-encoded random string (e.g., "a1b2c3d4...")
    """
    if num_bytes <= 0:
        num_bytes = NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


def build_sign_text(nonce: str) -> str:
    """Return the canonical human-readable message a wallet signs for ``nonce``."""
    return SIGN_TEXT_TEMPLATE.format(nonce=nonce)


def check_chain(chain: str) -> str:
    chain = (chain or "").strip().lower()
    if chain not in SUPPORTED_CHAINS:
        raise ValidationError(f"Unsupported chain: {chain or '<empty>'}")
    return chain


def _decode_hex(value: str) -> bytes:
    """Helper: Decode hex string (optionally 0x-prefixed) to bytes."""
    if value[:2].lower() == "0x":
        value = value[2:]
    return binascii.unhexlify(value.encode())


def _decode_base58(value: str) -> bytes:
    """Helper: Decode base58 string to bytes."""
    return base58.b58decode(value)


def _decode_solana_signature(value: str) -> bytes:
    """
    Helper: Decode a Solana signature sent as base58, hex or base64.

    Phantom returns raw bytes and front ends encode them differently, so all three are accepted.
    A 64-byte result is required whichever encoding matches.
    """
    for decoder in (_decode_base58, _decode_hex, lambda v: base64.b64decode(v, validate=True)):
        try:
            decoded = decoder(value)
        except (binascii.Error, ValueError):
            continue
        if len(decoded) == SOLANA_SIGNATURE_BYTES:
            return decoded
    raise ValidationError("Malformed signature")


def normalize_address(address: str, chain: str = CHAIN_EVM) -> str:
    """
    Validate an address and return its canonical stored form.

    EVM addresses are compared case-insensitively, so they are stored lowercased.
    Solana addresses are base58 public keys and are case-sensitive, so they are kept as sent.

    Raises:
        ValidationError: If the address is missing or malformed for the chain
    """
    chain = check_chain(chain)
    address = (address or "").strip()
    if not address:
        raise ValidationError("Address is required")

    if chain == CHAIN_EVM:
        if not _EVM_ADDRESS_RE.match(address):
            raise ValidationError("Malformed EVM address")
        return address.lower()

    try:
        public_key = _decode_base58(address)
    except ValueError:
        raise ValidationError("Malformed Solana address")
    if len(public_key) != SOLANA_PUBLIC_KEY_BYTES:
        raise ValidationError("Malformed Solana address")
    return address


def validate_signature(signature: str, chain: str = CHAIN_EVM) -> str:
    """
    Check the signature shape before any storage or crypto work.

    Raises:
        ValidationError: If the signature is missing or malformed for the chain
    """
    chain = check_chain(chain)
    signature = (signature or "").strip()
    if not signature:
        raise ValidationError("Signature is required")

    if chain == CHAIN_EVM:
        if not _EVM_SIGNATURE_RE.match(signature):
            raise ValidationError("Malformed signature")
    else:
        _decode_solana_signature(signature)
    return signature


def recover_evm_address(message: str, signature: str) -> str:
    """
    Recover the lowercased address that produced an EIP-191 personal_sign signature.

    Raises:
        ValidationError: If no public key can be recovered from the signature
    """
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as exc:
        # eth_account raises eth_keys BadSignature / ValueError for unrecoverable v, r, s
        raise ValidationError("Invalid signature") from exc
    return recovered.lower()


def verify_solana_signature(address: str, message: str, signature: str) -> bool:
    """Verify an ED25519 detached signature over ``message`` by the base58 ``address`` key."""
    public_key_bytes = _decode_base58(address)
    signature_bytes = _decode_solana_signature(signature)
    try:
        Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature_bytes, message.encode())
    except InvalidSignature:
        return False
    return True


def signer_matches(address: str, message: str, signature: str, chain: str = CHAIN_EVM) -> bool:
    """
    Check that ``signature`` over ``message`` was produced by the key behind ``address``.

    Args:
        address: Normalized claimed address (see normalize_address)
        message: The exact text that was signed (see build_sign_text)
        signature: Wallet signature (EVM: 0x hex, Solana: base58/hex/base64)
        chain: "evm" or "solana"

    Returns:
        True if the signer is the claimed address, False otherwise

    Raises:
        ValidationError: If the signature cannot be decoded or recovered
    """
    chain = check_chain(chain)
    if chain == CHAIN_EVM:
        return recover_evm_address(message, signature) == address.lower()
    return verify_solana_signature(address, message, signature)
