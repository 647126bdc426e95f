"""
utils/qr_engine.py
────────────────────────────────────────────
Zentrale QR-Engine für PianoStyle.
- Baut Venue- und Profil-Payloads aus Datensätzen (ORM-Objekt oder dict)
- Nutzt: utils/qr_codec, utils/qr_generator und utils/qr_config
- build_qr_code() gibt {"payload", "json", "deep_link", "data_url", "theme", "print_size"} zurück
────────────────────────────────────────────
"""

from typing import Any, Dict, Optional
import logging

from utils import settings
from utils.qr_codec import encode_payload, generate_deep_link, to_base_units
from utils.qr_config import APP_DESCRIPTION, PRINT_ERROR_CORRECTION, card_pixel_size, get_card_theme
from utils.qr_generator import QRRenderOptions, generate_qr
from utils.qr_schema import (
    MAX_BIO_LENGTH,
    IdentityPayload,
    Payment,
    PianoInfo,
    UserData,
    UserPayload,
    UserStats,
    VenueData,
    VenuePayload,
)
from utils.wallet_context import WalletConnectionContext

logger = logging.getLogger(__name__)


def _field(record: Any, name: str, default: Any = None) -> Any:
    """Liest ein Feld aus ORM-Objekt oder dict."""
    if isinstance(record, dict):
        value = record.get(name, default)
    else:
        value = getattr(record, name, default)
    return default if value is None else value


def _payment(
    recipient: Optional[str],
    amount: Optional[str],
    memo: str,
    wallet: Optional[WalletConnectionContext],
) -> Optional[Payment]:
    if not recipient:
        return None
    if amount:
        # wirft InvalidAmountError bei ungültigem Betrag
        to_base_units(amount)
    chain_id = wallet.chain_id if wallet is not None and wallet.chain_id else settings.DEFAULT_CHAIN_ID
    return Payment(address=recipient, amount=amount or None, chain_id=chain_id, memo=memo)


# ─────────────────────────────────────────────
# 🎹 Venue
# ─────────────────────────────────────────────
def build_venue_payload(
    venue: Any,
    *,
    include_payment: bool = False,
    amount: Optional[str] = None,
    wallet: Optional[WalletConnectionContext] = None,
) -> VenuePayload:
    """
    Erstellt den Venue-Payload. Der Zahlungsempfänger ist die Wallet der
    Venue, sonst die verbundene Wallet der Sitzung.
    """
    slug = _field(venue, "slug", "")
    name = _field(venue, "name", "")
    has_piano = _field(venue, "has_piano", False)

    data = VenueData(
        venue_id=int(_field(venue, "id", 0)),
        slug=slug,
        name=name,
        city=_field(venue, "city", ""),
        address=_field(venue, "address"),
        description=_field(venue, "description"),
        app_description=APP_DESCRIPTION,
        piano_info=PianoInfo(
            has_piano=bool(has_piano),
            piano_type=_field(venue, "piano_type"),
            condition=_field(venue, "piano_condition"),
        ),
        operating_hours=_field(venue, "operating_hours"),
        contact_info=_field(venue, "contact_info"),
        website=_field(venue, "website"),
        social_links=dict(_field(venue, "social_links", {})),
    )

    payment = None
    if include_payment:
        recipient = _field(venue, "wallet_address") or (wallet.address if wallet else None)
        payment = _payment(recipient, amount, f"Venue: {name}", wallet)
        if payment is None:
            logger.warning(f"⚠️ Keine Empfänger-Wallet für Venue '{slug}' – Zahlung ausgelassen")

    return VenuePayload(
        data=data,
        url=f"{settings.APP_DOMAIN}/venues/{slug}",
        payment=payment,
    )


# ─────────────────────────────────────────────
# 👤 Profil
# ─────────────────────────────────────────────
def build_user_payload(
    user: Any,
    *,
    include_payment: bool = False,
    amount: Optional[str] = None,
    wallet: Optional[WalletConnectionContext] = None,
) -> UserPayload:
    wallet_address = _field(user, "wallet_address", "")
    username = _field(user, "username")
    bio = _field(user, "bio")
    if bio and len(bio) > MAX_BIO_LENGTH:
        bio = bio[: MAX_BIO_LENGTH - 3] + "..."

    data = UserData(
        wallet_address=wallet_address,
        username=username,
        display_name=_field(user, "display_name"),
        profile_slug=_field(user, "profile_slug"),
        bio=bio,
        title=_field(user, "title"),
        location=_field(user, "location"),
        avatar=_field(user, "avatar"),
        stats=UserStats(
            total_pxp_earned=_field(user, "total_pxp_earned", 0),
            venues_discovered=int(_field(user, "venues_discovered", 0)),
            review_count=int(_field(user, "review_count", 0)),
        ),
        badges=tuple(_field(user, "badges", ())),
        skills=tuple(_field(user, "skills", ())),
        social_links=dict(_field(user, "social_links", {})),
        public_profile=bool(_field(user, "public_profile", True)),
    )

    payment = None
    if include_payment:
        payment = _payment(wallet_address, amount, f"Tip for {username or 'user'}", wallet)

    return UserPayload(
        data=data,
        url=f"{settings.APP_DOMAIN}/profile/{username or wallet_address}",
        payment=payment,
    )


# ─────────────────────────────────────────────
# 🖼️ QR-Karte rendern
# ─────────────────────────────────────────────
def build_qr_code(
    payload: IdentityPayload,
    theme: str = "piano",
    size: int = 300,
    layout: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Rendert einen Identitäts-Payload mit den QR-Farben des Karten-Themes.
    Wirft ValueError, wenn das Bild nicht erzeugt werden konnte.
    """
    style = get_card_theme(theme)
    text = encode_payload(payload)
    result = generate_qr(
        text,
        QRRenderOptions(
            size=size,
            error_correction=PRINT_ERROR_CORRECTION,
            dark_color=style["qr_foreground_color"],
            light_color=style["qr_background_color"],
        ),
    )
    if not result.ok:
        raise ValueError(result.message)

    logger.info(f"🎹 {payload.kind}-QR erstellt ({style['name']}, {size}px)")
    return {
        "payload": payload.to_dict(),
        "json": text,
        "deep_link": generate_deep_link(payload),
        "data_url": result.data_url,
        "theme": style,
        "print_size": card_pixel_size(layout) if layout else None,
    }
