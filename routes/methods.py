# routes/methods.py
# =============================================================================
# 💳 Zahlungsweg-Empfehlung anhand der Fähigkeiten des Clients
# =============================================================================

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from routes.deps import get_wallet_context
from utils.payment_methods import CapabilitySnapshot, PaymentMethodSelector
from utils.wallet_context import WalletConnectionContext

router = APIRouter(prefix="/payments", tags=["Payment Methods"])


class CapabilitiesIn(BaseModel):
    user_agent: Optional[str] = None
    viewport_width: Optional[int] = None
    has_metamask: bool = False
    has_wallet_connect: bool = False
    has_valora: bool = False
    has_coinbase_wallet: bool = False
    supports_camera: bool = False
    supports_clipboard: bool = False
    supports_share: bool = False
    is_mobile: bool = False


@router.post("/methods")
def payment_methods(
    body: CapabilitiesIn,
    user_agent: Optional[str] = Header(default=None),
    wallet: WalletConnectionContext = Depends(get_wallet_context),
) -> dict[str, Any]:
    flags = body.model_dump(exclude={"user_agent", "viewport_width"})
    caps = CapabilitySnapshot.from_probe(
        user_agent=body.user_agent or user_agent or "",
        viewport_width=body.viewport_width,
        **flags,
    )
    selector = PaymentMethodSelector(wallet=wallet)
    suggestions = selector.refresh(caps)

    return {
        "session_type": selector.session_type,
        "preferred_method": selector.preferred_method,
        "is_mobile": caps.is_mobile,
        "wallet_connected": wallet.is_connected,
        "onboarding_message": selector.onboarding_message,
        "platform_recommendations": selector.platform_recommendations,
        "suggestions": [asdict(s) for s in suggestions],
        "show_qr_scanner": selector.should_show_qr_scanner(),
    }
