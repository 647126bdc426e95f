# routes/qr/venue.py
# =============================================================================
# 🎹 Venue QR-Karten (PianoStyle QR)
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from database import get_db
from models.venue import Venue
from routes.deps import get_wallet_context
from utils.qr_codec import PaymentInputError
from utils.qr_engine import build_qr_code, build_venue_payload
from utils.wallet_context import WalletConnectionContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qr/venue", tags=["Venue QR"])


@router.get("/{slug}")
def venue_qr(
    slug: str,
    include_payment: bool = Query(default=False),
    amount: Optional[str] = Query(default=None),
    theme: str = Query(default="piano"),
    layout: Optional[str] = Query(default=None),
    size: int = Query(default=300, gt=0, le=2000),
    db: Session = Depends(get_db),
    wallet: WalletConnectionContext = Depends(get_wallet_context),
) -> dict:
    venue = db.scalar(select(Venue).where(Venue.slug == slug))
    if not venue:
        raise HTTPException(status_code=404, detail="Venue nicht gefunden")

    try:
        payload = build_venue_payload(venue, include_payment=include_payment, amount=amount, wallet=wallet)
        return build_qr_code(payload, theme=theme, size=size, layout=layout)
    except PaymentInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        logger.error(f"❌ Venue-QR fehlgeschlagen ({slug}): {e}")
        raise HTTPException(status_code=500, detail=str(e))
