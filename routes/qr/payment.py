# routes/qr/payment.py
# =============================================================================
# 💸 Payment QR-Code Routes (PianoStyle QR)
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from routes.deps import get_wallet_context
from utils.qr_codec import PaymentInputError
from utils.qr_config import PRINT_ERROR_CORRECTION
from utils.qr_generator import QRGenerationError, QRRenderOptions, generate_payment_qr
from utils.qr_schema import Payment
from utils.wallet_context import WalletConnectionContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qr/payment", tags=["Payment QR"])


class PaymentQRIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: Optional[str] = None
    amount: Optional[str] = None
    token_address: Optional[str] = Field(default=None, alias="tokenAddress")
    memo: Optional[str] = None
    chain_id: Optional[int] = Field(default=None, alias="chainId")
    size: int = 300
    error_correction: str = Field(default=PRINT_ERROR_CORRECTION, alias="errorCorrection")


@router.post("/generate")
def generate_payment(
    body: PaymentQRIn,
    wallet: WalletConnectionContext = Depends(get_wallet_context),
) -> dict:
    """
    Erzeugt eine celo:pay-URI und den passenden QR-Code.
    Ohne Adresse wird die verbundene Wallet als Empfänger verwendet.
    """
    payment = Payment(
        address=body.address or wallet.address or "",
        amount=body.amount,
        token_address=body.token_address,
        memo=body.memo,
        chain_id=body.chain_id if body.chain_id is not None else wallet.chain_id,
    )
    options = QRRenderOptions(size=body.size, error_correction=body.error_correction)

    try:
        uri, result = generate_payment_qr(payment, options)
    except PaymentInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.ok:
        status = 500 if result.error == QRGenerationError.ENCODING_FAILURE else 400
        raise HTTPException(status_code=status, detail=result.message)

    logger.info("💸 Payment-QR erstellt")
    return {"uri": uri, "data_url": result.data_url}
