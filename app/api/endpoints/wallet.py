from enum import Enum
from typing import List

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user_id, get_wallet_verifier
import app.schemas.wallet as schemas
from app.services.wallet_verification import WalletVerifier

router = APIRouter()
group_tags: List[str | Enum] = ["Wallets"]

"""
wallet ownership verification

challenge (GET /wallets/verify):
- input: bearer token
- output: nonce, signText (the exact text to sign), expiresAt

verify (POST /wallets/verify):
- input: bearer token, address, signature, chain (evm default | solana), walletType (optional)
- output: ok, wallet

the signText must be signed unchanged: personal_sign for evm, signMessage for solana.
a challenge is single use; request a new one after any failure.
"""

_error_responses = {
    status.HTTP_400_BAD_REQUEST: {"model": schemas.ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": schemas.ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": schemas.ErrorResponse},
}


@router.get(
    "/verify",
    tags=group_tags,
    response_model=schemas.ChallengeResponse,
    responses=_error_responses,
)
def request_challenge(
    user_id: str = Depends(get_current_user_id),
    verifier: WalletVerifier = Depends(get_wallet_verifier),
) -> schemas.ChallengeResponse:
    """Issue a nonce for the caller; any previous outstanding nonce stops working."""
    challenge = verifier.issue_challenge(user_id)
    return schemas.ChallengeResponse(
        nonce=challenge.nonce,
        sign_text=challenge.sign_text,
        expires_at=challenge.expires_at,
    )


@router.post(
    "/verify",
    tags=group_tags,
    response_model=schemas.VerifyResponse,
    responses={**_error_responses, status.HTTP_409_CONFLICT: {"model": schemas.ErrorResponse}},
)
def verify_wallet(
    body: schemas.VerifyRequest,
    user_id: str = Depends(get_current_user_id),
    verifier: WalletVerifier = Depends(get_wallet_verifier),
) -> schemas.VerifyResponse:
    """
    Verify a signature over the caller's outstanding challenge and link the wallet.

    Errors (JSON {"error", "code"}):
    - 400 validation_error / nonce_not_found / nonce_expired / signature_mismatch
    - 409 wallet_already_linked
    - 500 storage_error
    """
    connection = verifier.verify(
        user_id,
        body.address,
        body.signature,
        chain=body.chain,
        wallet_type=body.wallet_type,
    )
    return schemas.VerifyResponse(wallet=schemas.WalletResponse.from_record(connection))


@router.get(
    "",
    tags=group_tags,
    response_model=schemas.WalletListResponse,
    responses=_error_responses,
)
def list_wallets(
    user_id: str = Depends(get_current_user_id),
    verifier: WalletVerifier = Depends(get_wallet_verifier),
) -> schemas.WalletListResponse:
    """List the caller's verified wallets, most recently verified first."""
    wallets = [schemas.WalletResponse.from_record(row) for row in verifier.list_wallets(user_id)]
    return schemas.WalletListResponse(wallets=wallets, total=len(wallets))


@router.delete(
    "/{address}",
    tags=group_tags,
    response_model=schemas.OkResponse,
    responses={**_error_responses, status.HTTP_404_NOT_FOUND: {"model": schemas.ErrorResponse}},
)
def unlink_wallet(
    address: str,
    chain: str = Query(default="evm", description="Signing scheme of the address: evm or solana"),
    user_id: str = Depends(get_current_user_id),
    verifier: WalletVerifier = Depends(get_wallet_verifier),
) -> schemas.OkResponse:
    """Remove one of the caller's wallet bindings."""
    verifier.unlink_wallet(user_id, address, chain)
    return schemas.OkResponse()
