"""
utils/qr_codec.py
────────────────────────────────────────────
Kodierung & Dekodierung der PianoStyle-QR-Inhalte.

- encode_payment_uri   → celo:pay?address=…&amount=<wei>&…
- encode_payload       → JSON der Venue-/User-Payloads
- generate_deep_link   → pianostyle://venue/<slug>, pianostyle://user/<address>
- decode_scanned_text  → erkennt das Format eines gescannten Strings

Der Decoder wirft niemals: jedes Ergebnis ist ein typisiertes ScanResult,
im Zweifel UnrecognizedScan mit dem Originaltext.
────────────────────────────────────────────
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Union
from urllib.parse import parse_qs, quote, urlencode, urlsplit

from utils import settings
from utils.qr_schema import (
    ADDRESS_RE,
    IdentityPayload,
    Payment,
    UserPayload,
    VenuePayload,
    frozen_map,
    is_supported_version,
    is_valid_address,
    is_valid_user_payload,
    is_valid_venue_payload,
    payload_kind,
)

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 18
_WEI_SCALE = Decimal(10) ** TOKEN_DECIMALS

UNRECOGNIZED_MESSAGE = (
    "QR code does not contain a valid payment, wallet address, venue, or user profile"
)
INVALID_PAYLOAD_MESSAGE = "QR code payload failed validation"

_ETHEREUM_URI_RE = re.compile(r"^ethereum:([^@?]+)(?:@(\d+))?(?:\?(.+))?$")


# =============================================================================
# ❌ Eingabefehler
# =============================================================================

class PaymentInputError(ValueError):
    """Ungültige Zahlungsdaten beim Kodieren (synchron, typisiert)."""

    def __init__(self, reason: str, field_name: str = "address"):
        super().__init__(reason)
        self.reason = reason
        self.field_name = field_name


class InvalidAmountError(PaymentInputError):
    def __init__(self, reason: str):
        super().__init__(reason, field_name="amount")


# =============================================================================
# 💰 18-Dezimalstellen-Skalierung
# =============================================================================

def to_base_units(amount: Union[str, int, float, Decimal]) -> str:
    """
    Wandelt einen menschlichen Betrag ("2.5") in Basiseinheiten um
    (amount * 10^18, abgerundet) und gibt ihn als Integer-String zurück.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Malformed amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 80
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise InvalidAmountError(f"Malformed amount: {amount!r}") from None
        if not value.is_finite():
            raise InvalidAmountError(f"Amount must be finite: {amount!r}")
        if value < 0:
            raise InvalidAmountError(f"Amount must not be negative: {amount!r}")
        return str(int((value * _WEI_SCALE).to_integral_value(rounding=ROUND_FLOOR)))


def from_base_units(value: Union[str, int]) -> Optional[str]:
    """Basiseinheiten → Dezimalbetrag ohne überflüssige Nullen; None bei Müll."""
    with localcontext() as ctx:
        ctx.prec = 80
        try:
            scaled = Decimal(str(value).strip()) / _WEI_SCALE
        except InvalidOperation:
            return None
        if not scaled.is_finite():
            return None
        text = format(scaled.normalize(), "f")
    return text


# =============================================================================
# 🔐 Kodierung
# =============================================================================

def encode_payment_uri(
    payment: Union[Payment, Mapping[str, Any]],
    default_chain_id: Optional[int] = None,
) -> str:
    """
    Erzeugt die kanonische Zahlungs-URI:
        celo:pay?address=…&amount=<wei>&token=<addr>&memo=<urlenc>&chainId=<id>

    Nur vorhandene Felder werden serialisiert. Der Betrag wird als
    menschlicher Dezimalwert erwartet (nicht vorskaliert).
    """
    if isinstance(payment, Mapping):
        payment = Payment.from_dict(payment)

    address = (payment.address or "").strip()
    if not address:
        raise PaymentInputError("Recipient address is required")
    if not is_valid_address(address):
        raise PaymentInputError(f"Invalid recipient address: {address}")

    params = [("address", address)]
    if payment.amount is not None and str(payment.amount).strip():
        params.append(("amount", to_base_units(payment.amount)))
    if payment.token_address:
        params.append(("token", payment.token_address))
    if payment.memo:
        params.append(("memo", payment.memo))
    chain_id = payment.chain_id
    if chain_id is None:
        chain_id = default_chain_id if default_chain_id is not None else settings.DEFAULT_CHAIN_ID
    params.append(("chainId", str(chain_id)))

    return f"{settings.PAYMENT_SCHEME}:pay?{urlencode(params, quote_via=quote)}"


def encode_payload(payload: IdentityPayload) -> str:
    """Serialisiert einen Venue-/User-Payload als kompaktes JSON."""
    return json.dumps(payload.to_dict(), separators=(",", ":"), ensure_ascii=False)


def generate_deep_link(payload: IdentityPayload) -> str:
    params: Dict[str, str] = {}
    if isinstance(payload, VenuePayload):
        target, identifier = "venue", payload.data.slug
    else:
        target, identifier = "user", payload.data.wallet_address
        if payload.data.username:
            params["username"] = payload.data.username
    if payload.payment is not None and payload.payment.amount:
        params["payment"] = str(payload.payment.amount)

    link = f"{settings.DEEP_LINK_SCHEME}://{target}/{identifier}"
    return f"{link}?{urlencode(params)}" if params else link


# =============================================================================
# 📦 Ergebnis-Typen (Tagged Union)
# =============================================================================

@dataclass(frozen=True)
class DeepLink:
    scheme: str
    host: str
    path: str
    params: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", frozen_map(self.params))

    @property
    def identifier(self) -> str:
        return self.path.lstrip("/")


@dataclass(frozen=True)
class VenueScan:
    raw: str
    payload: VenuePayload
    payment: Optional[Payment] = None  # sekundäres Zahlungs-Event
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "venue"


@dataclass(frozen=True)
class UserScan:
    raw: str
    payload: UserPayload
    payment: Optional[Payment] = None
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "user"


@dataclass(frozen=True)
class PaymentScan:
    raw: str
    payment: Payment
    scheme: str = "celo"
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "payment_uri"


@dataclass(frozen=True)
class DeepLinkScan:
    raw: str
    target: str  # "venue", "user" oder "url"
    identifier: str = ""
    url: Optional[str] = None
    params: Mapping[str, str] = field(default_factory=dict, hash=False)
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "deep_link"

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", frozen_map(self.params))


@dataclass(frozen=True)
class AddressScan:
    raw: str
    address: str
    extracted: bool = False
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "address"


@dataclass(frozen=True)
class UnrecognizedScan:
    raw: str
    message: str = UNRECOGNIZED_MESSAGE
    navigate_to: Optional[str] = None

    kind: ClassVar[str] = "unrecognized"


ScanResult = Union[VenueScan, UserScan, PaymentScan, DeepLinkScan, AddressScan, UnrecognizedScan]


def scan_result_to_dict(result: ScanResult) -> Dict[str, Any]:
    """JSON-taugliche Darstellung eines ScanResult (für API & Logs)."""
    out: Dict[str, Any] = {"kind": result.kind, "raw": result.raw, "navigate_to": result.navigate_to}
    for f in dataclasses.fields(result):
        if f.name in out:
            continue
        value = getattr(result, f.name)
        if isinstance(value, (VenuePayload, UserPayload, Payment)):
            value = value.to_dict()
        elif isinstance(value, Mapping):
            value = dict(value)
        out[f.name] = value
    return out


# =============================================================================
# 🔎 Dekodierung – einzelne Erkennungsschritte
# =============================================================================

def _venue_route(slug: str) -> str:
    return f"/venues/{slug}"


def _profile_route(identifier: str) -> str:
    return f"/profile/{identifier}"


class _NonFiniteConstant(ValueError):
    pass


def _reject_constant(name: str) -> Any:
    raise _NonFiniteConstant(name)


def _match_json(raw: str, auto_navigate: bool) -> Optional[ScanResult]:
    try:
        obj = json.loads(raw, parse_constant=_reject_constant)
    except _NonFiniteConstant as e:
        # NaN / Infinity sind kein JSON: Inhalt verwerfen, nicht als Text weiterraten
        logger.warning(f"⚠️ JSON mit ungültiger Konstante {e} verworfen")
        return UnrecognizedScan(raw=raw, message=INVALID_PAYLOAD_MESSAGE)
    except (ValueError, TypeError):
        return None
    if not isinstance(obj, dict):
        return None

    kind = payload_kind(obj)
    if kind in ("venue", "user") and not is_supported_version(str(obj.get("version"))):
        logger.warning(f"⚠️ Unbekannte Payload-Version {obj.get('version')!r} – best effort")

    if is_valid_venue_payload(obj):
        payload = VenuePayload.from_dict(obj)
        payment = None
        if payload.payment is not None:
            payment = dataclasses.replace(
                payload.payment, memo=payload.payment.memo or f"Venue: {payload.data.name}"
            )
        logger.info(f"🎹 Venue-QR erkannt: {payload.data.slug}")
        return VenueScan(
            raw=raw,
            payload=payload,
            payment=payment,
            navigate_to=_venue_route(payload.data.slug) if auto_navigate else None,
        )

    if is_valid_user_payload(obj):
        payload = UserPayload.from_dict(obj)
        payment = None
        if payload.payment is not None:
            payment = dataclasses.replace(
                payload.payment,
                memo=payload.payment.memo or f"Tip for {payload.data.username or 'user'}",
            )
        logger.info(f"👤 Profil-QR erkannt: {payload.data.wallet_address}")
        profile_slug = payload.data.username or payload.data.wallet_address
        return UserScan(
            raw=raw,
            payload=payload,
            payment=payment,
            navigate_to=_profile_route(profile_slug) if auto_navigate else None,
        )

    if kind in ("venue", "user"):
        # Payload behauptet Venue/User zu sein, ist aber ungültig → nie teilweise vertrauen
        logger.warning(f"⚠️ Ungültiger {kind}-Payload verworfen")
        return UnrecognizedScan(raw=raw, message=INVALID_PAYLOAD_MESSAGE)

    url = obj.get("url")
    if isinstance(url, str) and url.strip():
        logger.info(f"🔗 Deep Link im JSON erkannt: {url}")
        return DeepLinkScan(
            raw=raw,
            target="url",
            url=url,
            navigate_to=(urlsplit(url).path or "/") if auto_navigate else None,
        )
    return None


def _first(params: Dict[str, list], *keys: str) -> Optional[str]:
    for key in keys:
        values = params.get(key)
        if values and values[0]:
            return values[0]
    return None


def _parse_chain_id(value: Optional[str]) -> Optional[int]:
    if value and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_payment_uri(uri: str) -> Optional[Payment]:
    """
    Erkennt celo:pay?… und ethereum:<address>[@chainId][?query] (EIP-681).
    Gibt None zurück, wenn es keine Zahlungs-URI ist.
    """
    prefix = f"{settings.PAYMENT_SCHEME}:pay?"
    if uri.startswith(prefix):
        params = parse_qs(uri[len(prefix):])
        return Payment(
            address=_first(params, "address") or "",
            amount=_first(params, "amount"),
            token_address=_first(params, "token"),
            memo=_first(params, "memo"),
            chain_id=_parse_chain_id(_first(params, "chainId")),
        )

    if uri.startswith("ethereum:"):
        match = _ETHEREUM_URI_RE.match(uri)
        if not match:
            return None
        address, chain_id, query = match.groups()
        params = parse_qs(query or "")
        return Payment(
            address=address,
            amount=_first(params, "value", "amount"),
            token_address=_first(params, "token"),
            memo=_first(params, "memo", "data"),
            chain_id=_parse_chain_id(chain_id),
        )
    return None


def _match_payment_uri(raw: str, auto_navigate: bool) -> Optional[ScanResult]:
    payment = parse_payment_uri(raw)
    if payment is None or not payment.address:
        return None
    logger.info(f"💸 Zahlungs-QR erkannt: {payment.address}")
    scheme = "ethereum" if raw.startswith("ethereum:") else settings.PAYMENT_SCHEME
    return PaymentScan(raw=raw, payment=payment, scheme=scheme)


def parse_deep_link(text: str) -> Optional[DeepLink]:
    try:
        parts = urlsplit(text)
    except ValueError:
        return None
    if parts.scheme != settings.DEEP_LINK_SCHEME:
        return None
    params = {k: v[0] for k, v in parse_qs(parts.query).items() if v}
    return DeepLink(scheme=parts.scheme, host=parts.netloc, path=parts.path, params=params)


def _match_deep_link(raw: str, auto_navigate: bool) -> Optional[ScanResult]:
    link = parse_deep_link(raw)
    if link is None or link.host not in ("venue", "user") or not link.identifier:
        return None
    logger.info(f"🔗 Deep Link erkannt: {link.host}/{link.identifier}")
    route = _venue_route(link.identifier) if link.host == "venue" else _profile_route(link.identifier)
    return DeepLinkScan(
        raw=raw,
        target=link.host,
        identifier=link.identifier,
        params=link.params,
        navigate_to=route if auto_navigate else None,
    )


def _match_address(raw: str, auto_navigate: bool) -> Optional[ScanResult]:
    candidate = raw.strip()
    if ADDRESS_RE.fullmatch(candidate):
        logger.info(f"👛 Wallet-Adresse erkannt: {candidate}")
        return AddressScan(raw=raw, address=candidate)
    return None


def _match_embedded_address(raw: str, auto_navigate: bool) -> Optional[ScanResult]:
    match = ADDRESS_RE.search(raw)
    if match:
        logger.info(f"👛 Adresse aus QR-Text extrahiert: {match.group(0)}")
        return AddressScan(raw=raw, address=match.group(0), extracted=True)
    return None


# Reihenfolge = Priorität: reichere Formate vor ärmeren
_DECODE_STEPS: tuple[Callable[[str, bool], Optional[ScanResult]], ...] = (
    _match_json,
    _match_payment_uri,
    _match_deep_link,
    _match_address,
    _match_embedded_address,
)


def decode_scanned_text(raw: Any, *, auto_navigate: bool = False) -> ScanResult:
    """
    Ordnet einen gescannten String genau einem Ergebnis-Typ zu.
    Jeder Schritt ist isoliert: eine Exception zählt als "kein Treffer".
    """
    text = raw if isinstance(raw, str) else ("" if raw is None else str(raw))

    for step in _DECODE_STEPS:
        try:
            result = step(text, auto_navigate)
        except Exception as exc:
            logger.debug(f"Decode-Schritt {step.__name__} fehlgeschlagen: {exc}")
            continue
        if result is not None:
            return result

    logger.warning(f"⚠️ Unbekanntes QR-Format: {text[:120]!r}")
    return UnrecognizedScan(raw=text)
