# =============================================================================
# 💳 utils/payment_methods.py
# -----------------------------------------------------------------------------
# Erkennt die Fähigkeiten einer Sitzung (Wallets, Kamera, Mobilgerät) und
# schlägt daraus Zahlungswege vor: Web3-Direktzahlung, QR scannen, QR zeigen.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

from utils.wallet_context import WalletConnectionContext

logger = logging.getLogger(__name__)

SessionType = Literal["web3", "qr"]
MethodName = Literal["web3", "qr_scan", "qr_display"]

MOBILE_UA_RE = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)
MOBILE_MAX_VIEWPORT = 768


@dataclass(frozen=True)
class CapabilitySnapshot:
    has_metamask: bool = False
    has_wallet_connect: bool = False
    has_valora: bool = False
    has_coinbase_wallet: bool = False
    supports_camera: bool = False
    supports_clipboard: bool = False
    supports_share: bool = False
    is_mobile: bool = False

    @property
    def has_web3_wallet(self) -> bool:
        return self.has_metamask or self.has_wallet_connect or self.has_valora or self.has_coinbase_wallet

    @classmethod
    def from_probe(
        cls,
        user_agent: str = "",
        viewport_width: Optional[int] = None,
        **flags: bool,
    ) -> "CapabilitySnapshot":
        """Baut einen Snapshot aus User-Agent, Viewport-Breite und gemeldeten Flags."""
        is_mobile = bool(MOBILE_UA_RE.search(user_agent or "")) or (
            viewport_width is not None and viewport_width <= MOBILE_MAX_VIEWPORT
        )
        known = {k: bool(v) for k, v in flags.items() if k in cls.__dataclass_fields__ and k != "is_mobile"}
        return cls(is_mobile=is_mobile or bool(flags.get("is_mobile")), **known)


@dataclass(frozen=True)
class MethodSuggestion:
    method: MethodName
    title: str
    description: str
    priority: int


def classify_session(caps: CapabilitySnapshot) -> SessionType:
    return "web3" if caps.has_web3_wallet else "qr"


def suggest_payment_methods(caps: CapabilitySnapshot) -> List[MethodSuggestion]:
    """Rangliste der Zahlungswege (stabil sortiert nach Priorität)."""
    session = classify_session(caps)
    suggestions: List[MethodSuggestion] = []

    if session == "web3":
        suggestions.append(MethodSuggestion(
            method="web3",
            title="Direct Web3 Payment",
            description="Pay instantly with your connected wallet",
            priority=1,
        ))

    if caps.is_mobile and caps.supports_camera:
        suggestions.append(MethodSuggestion(
            method="qr_scan",
            title="Scan QR Code",
            description="Use your phone camera to scan payment codes",
            priority=1 if session == "qr" else 2,
        ))

    suggestions.append(MethodSuggestion(
        method="qr_display",
        title="Show QR Code",
        description="Display QR code for others to scan",
        priority=3,
    ))

    return sorted(suggestions, key=lambda s: s.priority)


# =============================================================================
# 🧭 Selector
# =============================================================================

class PaymentMethodSelector:
    def __init__(
        self,
        caps: Optional[CapabilitySnapshot] = None,
        wallet: Optional[WalletConnectionContext] = None,
    ):
        self.wallet = wallet
        self.caps = caps or CapabilitySnapshot()

    def refresh(self, caps: CapabilitySnapshot) -> List[MethodSuggestion]:
        """Neu erkennen (z. B. nach Wallet-Installation); gleiche Eingabe → gleiches Ergebnis."""
        self.caps = caps
        logger.info(f"🔎 Zahlungswege neu bestimmt: {self.session_type}")
        return self.suggestions

    @property
    def session_type(self) -> SessionType:
        return classify_session(self.caps)

    @property
    def suggestions(self) -> List[MethodSuggestion]:
        return suggest_payment_methods(self.caps)

    @property
    def preferred_method(self) -> Literal["web3", "qr"]:
        return "web3" if self.session_type == "web3" else "qr"

    @property
    def recommended_flow(self) -> SessionType:
        return self.session_type

    @property
    def onboarding_message(self) -> str:
        if self.session_type == "web3":
            return "Great! We detected your Web3 wallet. You can use advanced features like direct transactions."
        if self.caps.is_mobile:
            return "Perfect for mobile! Use QR codes to send and receive PXP payments easily."
        return "Welcome! You can use QR codes for payments or connect a Web3 wallet for advanced features."

    @property
    def platform_recommendations(self) -> List[str]:
        recs = []
        if self.caps.is_mobile:
            recs.append("Mobile QR scanning available")
            if self.caps.supports_camera:
                recs.append("Camera access detected")
            if self.caps.supports_share:
                recs.append("Native sharing supported")

        if self.session_type == "web3":
            recs.append("Web3 wallet detected")
            if self.caps.has_metamask:
                recs.append("MetaMask available")
            if self.caps.has_valora:
                recs.append("Valora available")
            if self.caps.has_coinbase_wallet:
                recs.append("Coinbase Wallet available")
        else:
            recs.append("QR code payments recommended")
        return recs

    def wallet_install_links(self, host: str = "") -> List[Tuple[str, str]]:
        """Wallet-Empfehlungen für den Umstieg auf Web3."""
        if self.caps.is_mobile:
            return [
                ("MetaMask Mobile", f"https://metamask.app.link/dapp/{host}"),
                ("Valora", "https://valoraapp.com/"),
            ]
        return [
            ("MetaMask", "https://metamask.io/"),
            ("Coinbase Wallet", "https://www.coinbase.com/wallet"),
        ]

    def should_show_web3_features(self) -> bool:
        return self.session_type == "web3"

    def should_show_qr_features(self) -> bool:
        return self.session_type == "qr" or self.caps.is_mobile

    def should_show_qr_scanner(self) -> bool:
        return self.caps.supports_camera and self.caps.is_mobile

    @property
    def can_pay_directly(self) -> bool:
        """Web3-Zahlung nur mit verbundener Wallet."""
        return self.should_show_web3_features() and self.wallet is not None and self.wallet.is_connected
