from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.my_base_model import CustomBaseModel


class ChallengeResponse(CustomBaseModel):
    """Response model for challenge issuance - output"""

    nonce: str
    sign_text: str = Field(..., alias="signText", description="Exact text the wallet must sign")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry as epoch seconds")


class VerifyRequest(BaseModel):
    """Request model for wallet verification - input validation"""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., description="Claimed wallet address")
    signature: str = Field(..., description="Signature over the challenge signText")
    chain: str = Field("evm", description="Signing scheme: evm or solana")
    wallet_type: Optional[str] = Field(
        None, alias="walletType", description="Client wallet, e.g. metamask, walletconnect, phantom"
    )


class WalletResponse(CustomBaseModel):
    """A verified wallet binding - output"""

    id: int
    wallet_address: str = Field(..., alias="address")
    chain: str
    wallet_type: Optional[str] = Field(None, alias="walletType")
    verified: bool
    verified_at: Optional[int] = Field(None, alias="verifiedAt")
    created_at: int = Field(..., alias="createdAt")


class VerifyResponse(CustomBaseModel):
    ok: bool = True
    wallet: WalletResponse


class WalletListResponse(CustomBaseModel):
    wallets: List[WalletResponse]
    total: int


class OkResponse(CustomBaseModel):
    ok: bool = True


class ErrorResponse(CustomBaseModel):
    error: str
    code: str
