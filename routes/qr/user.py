# routes/qr/user.py
# =============================================================================
# 👤 Profil-QR-Karten (PianoStyle QR)
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from database import get_db
from models.user import UserProfile
from routes.deps import get_wallet_context
from utils.qr_codec import PaymentInputError
from utils.qr_engine import build_qr_code, build_user_payload
from utils.qr_schema import is_valid_address
from utils.wallet_context import WalletConnectionContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qr/user", tags=["Profile QR"])


@router.get("/{address}")
def user_qr(
    address: str,
    include_payment: bool = Query(default=False),
    amount: Optional[str] = Query(default=None),
    theme: str = Query(default="piano"),
    layout: Optional[str] = Query(default=None),
    size: int = Query(default=300, gt=0, le=2000),
    db: Session = Depends(get_db),
    wallet: WalletConnectionContext = Depends(get_wallet_context),
) -> dict:
    if not is_valid_address(address):
        raise HTTPException(status_code=400, detail="Ungültige Wallet-Adresse")

    # Adressen case-insensitiv vergleichen (Checksum-Schreibweise)
    profile = db.scalar(
        select(UserProfile).where(func.lower(UserProfile.wallet_address) == address.lower())
    )
    if not profile or not profile.public_profile:
        raise HTTPException(status_code=404, detail="Profil nicht gefunden")

    try:
        payload = build_user_payload(profile, include_payment=include_payment, amount=amount, wallet=wallet)
        return build_qr_code(payload, theme=theme, size=size, layout=layout)
    except PaymentInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        logger.error(f"❌ Profil-QR fehlgeschlagen ({address}): {e}")
        raise HTTPException(status_code=500, detail=str(e))
