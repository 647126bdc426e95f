# utils/qr_schema.py
"""
Definiert die versionierten QR-Payloads (Venue, User, Payment)
und die Validierungsregeln für jeden Payload-Typ.

Alle Prädikate sind rein: sie akzeptieren beliebige Objekte (auch None)
und werfen niemals eine Exception.
"""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

# ✅ Wallet-Adressen: 0x + genau 40 Hex-Zeichen
# fullmatch für ganze Werte, search für eingebettete Adressen
ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")

PAYLOAD_VERSION = "1.1"
SUPPORTED_VERSIONS = frozenset({"1.0", "1.1"})

DEFAULT_TOKEN = "PXP"

# Anzeige-Grenzen (nur fürs Rendering, der Payload trägt immer die volle Liste)
MAX_DISPLAY_BADGES = 5
MAX_SKILLS = 5
MAX_BIO_LENGTH = 150


# ✅ Pflichtfelder pro Payload-Typ (Feldname → erwarteter Typ)
PAYLOAD_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "venue": {
        "required": {"venueId": int, "slug": str, "name": str},
        "optional": [
            "city", "address", "description", "appDescription", "pianoInfo",
            "operatingHours", "contactInfo", "website", "socialLinks",
        ],
    },
    "user": {
        "required": {"walletAddress": str},
        "optional": [
            "username", "displayName", "profileSlug", "bio", "title", "location",
            "avatar", "stats", "badges", "skills", "socialLinks", "publicProfile",
        ],
    },
    "payment": {
        "required": {"address": str},
        "optional": ["amount", "token", "tokenAddress", "chainId", "memo"],
    },
}


BADGE_DEFINITIONS: Dict[str, Dict[str, str]] = {
    "verified_curator": {
        "name": "Verified Curator",
        "description": "Authorized to verify venues",
        "icon": "✅",
    },
    "top_scout": {
        "name": "Top Scout",
        "description": "Discovered 10+ verified venues",
        "icon": "🔍",
    },
    "early_adopter": {
        "name": "Early Adopter",
        "description": "One of the first 100 users",
        "icon": "🌟",
    },
    "community_champion": {
        "name": "Community Champion",
        "description": "Active community contributor",
        "icon": "🏆",
    },
    "piano_virtuoso": {
        "name": "Piano Virtuoso",
        "description": "Professional pianist",
        "icon": "🎹",
    },
    "jam_host": {
        "name": "Jam Host",
        "description": "Regularly hosts jam sessions",
        "icon": "🎵",
    },
    "venue_partner": {
        "name": "Venue Partner",
        "description": "Verified venue owner/manager",
        "icon": "🤝",
    },
}


def now_ms() -> int:
    """Aktuelle Zeit in Epoch-Millisekunden."""
    return int(time.time() * 1000)


# --------------------------------------------------------------------------- #
# 🔧 Hilfsfunktionen für die best-effort Feldextraktion
# --------------------------------------------------------------------------- #

def _opt_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _num(value: Any, default: int = 0) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


def frozen_map(value: Mapping[str, str]) -> Mapping[str, str]:
    """Schreibgeschützte Kopie für Felder der eingefrorenen Payloads."""
    return MappingProxyType(dict(value))


def _str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str) and v}


def _str_tuple(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Entfernt None-Werte, damit der QR-Inhalt klein bleibt."""
    return {k: v for k, v in values.items() if v is not None}


# =============================================================================
# 💸 Payment
# =============================================================================

@dataclass(frozen=True)
class Payment:
    address: str
    amount: Optional[str] = None  # Dezimalbetrag in Token-Einheiten, z. B. "2.5"
    token: str = DEFAULT_TOKEN
    token_address: Optional[str] = None
    chain_id: Optional[int] = None
    memo: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "address": self.address,
                "amount": self.amount,
                "token": self.token,
                "tokenAddress": self.token_address,
                "chainId": self.chain_id,
                "memo": self.memo,
            }
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Payment":
        return cls(
            address=_opt_str(raw.get("address")) or "",
            amount=_opt_str(raw.get("amount")),
            token=_opt_str(raw.get("token")) or DEFAULT_TOKEN,
            token_address=_opt_str(raw.get("tokenAddress")),
            chain_id=_opt_int(raw.get("chainId")),
            memo=_opt_str(raw.get("memo")),
        )


# =============================================================================
# 🎹 Venue
# =============================================================================

@dataclass(frozen=True)
class PianoInfo:
    has_piano: bool = False
    piano_type: Optional[str] = None
    condition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {"hasPiano": self.has_piano, "pianoType": self.piano_type, "condition": self.condition}
        )

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["PianoInfo"]:
        if not isinstance(raw, Mapping):
            return None
        return cls(
            has_piano=raw.get("hasPiano") is True,
            piano_type=_opt_str(raw.get("pianoType")),
            condition=_opt_str(raw.get("condition")),
        )


@dataclass(frozen=True)
class VenueData:
    venue_id: int
    slug: str
    name: str
    city: str = ""
    address: Optional[str] = None
    description: Optional[str] = None
    app_description: Optional[str] = None
    piano_info: Optional[PianoInfo] = None
    operating_hours: Optional[str] = None
    contact_info: Optional[str] = None
    website: Optional[str] = None
    social_links: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "social_links", frozen_map(self.social_links))

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "venueId": self.venue_id,
                "slug": self.slug,
                "name": self.name,
                "city": self.city,
                "address": self.address,
                "description": self.description,
                "appDescription": self.app_description,
                "pianoInfo": self.piano_info.to_dict() if self.piano_info else None,
                "operatingHours": self.operating_hours,
                "contactInfo": self.contact_info,
                "website": self.website,
                "socialLinks": dict(self.social_links) or None,
            }
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "VenueData":
        return cls(
            venue_id=_opt_int(raw.get("venueId")) or 0,
            slug=_opt_str(raw.get("slug")) or "",
            name=_opt_str(raw.get("name")) or "",
            city=_opt_str(raw.get("city")) or "",
            address=_opt_str(raw.get("address")),
            description=_opt_str(raw.get("description")),
            app_description=_opt_str(raw.get("appDescription")),
            piano_info=PianoInfo.from_dict(raw.get("pianoInfo")),
            operating_hours=_opt_str(raw.get("operatingHours")),
            contact_info=_opt_str(raw.get("contactInfo")),
            website=_opt_str(raw.get("website")),
            social_links=_str_map(raw.get("socialLinks")),
        )


# =============================================================================
# 👤 User
# =============================================================================

@dataclass(frozen=True)
class UserStats:
    total_pxp_earned: Union[int, float] = 0
    venues_discovered: int = 0
    review_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPXPEarned": self.total_pxp_earned,
            "venuesDiscovered": self.venues_discovered,
            "reviewCount": self.review_count,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "UserStats":
        if not isinstance(raw, Mapping):
            return cls()
        return cls(
            total_pxp_earned=_num(raw.get("totalPXPEarned")),
            venues_discovered=int(_num(raw.get("venuesDiscovered"))),
            # ältere Karten nannten das Feld "verificationsCompleted"
            review_count=int(_num(raw.get("reviewCount", raw.get("verificationsCompleted")))),
        )


@dataclass(frozen=True)
class UserData:
    wallet_address: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    profile_slug: Optional[str] = None
    bio: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    stats: UserStats = field(default_factory=UserStats)
    badges: Tuple[str, ...] = ()
    skills: Tuple[str, ...] = ()
    social_links: Mapping[str, str] = field(default_factory=dict, hash=False)
    public_profile: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "social_links", frozen_map(self.social_links))

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "walletAddress": self.wallet_address,
                "username": self.username,
                "displayName": self.display_name,
                "profileSlug": self.profile_slug,
                "bio": self.bio,
                "title": self.title,
                "location": self.location,
                "avatar": self.avatar,
                "stats": self.stats.to_dict(),
                "badges": list(self.badges),
                "skills": list(self.skills),
                "socialLinks": dict(self.social_links) or None,
                "publicProfile": self.public_profile,
            }
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "UserData":
        badges = raw.get("badges")
        # Version 1.0 hat Badges als Objekte {"id": ..., "name": ...} eingebettet
        if isinstance(badges, list):
            badges = [b.get("id") if isinstance(b, Mapping) else b for b in badges]
        return cls(
            wallet_address=_opt_str(raw.get("walletAddress")) or "",
            username=_opt_str(raw.get("username")),
            display_name=_opt_str(raw.get("displayName")),
            profile_slug=_opt_str(raw.get("profileSlug")),
            bio=_opt_str(raw.get("bio")),
            title=_opt_str(raw.get("title")),
            location=_opt_str(raw.get("location")),
            avatar=_opt_str(raw.get("avatar")),
            stats=UserStats.from_dict(raw.get("stats")),
            badges=_str_tuple(badges),
            skills=_str_tuple(raw.get("skills")),
            social_links=_str_map(raw.get("socialLinks")),
            public_profile=raw.get("publicProfile") is not False,
        )


# =============================================================================
# 📦 Payloads (Tagged Union über "kind")
# =============================================================================

@dataclass(frozen=True)
class VenuePayload:
    data: VenueData
    url: str
    version: str = PAYLOAD_VERSION
    generated_at: int = field(default_factory=now_ms)
    payment: Optional[Payment] = None

    kind: ClassVar[str] = "venue"

    def to_dict(self) -> Dict[str, Any]:
        return _payload_dict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "VenuePayload":
        data = raw.get("data")
        return cls(
            data=VenueData.from_dict(data if isinstance(data, Mapping) else {}),
            **_envelope_fields(raw),
        )


@dataclass(frozen=True)
class UserPayload:
    data: UserData
    url: str
    version: str = PAYLOAD_VERSION
    generated_at: int = field(default_factory=now_ms)
    payment: Optional[Payment] = None

    kind: ClassVar[str] = "user"

    def to_dict(self) -> Dict[str, Any]:
        return _payload_dict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "UserPayload":
        data = raw.get("data")
        return cls(
            data=UserData.from_dict(data if isinstance(data, Mapping) else {}),
            **_envelope_fields(raw),
        )


IdentityPayload = Union[VenuePayload, UserPayload]


def _payload_dict(payload: IdentityPayload) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "kind": payload.kind,
        "version": payload.version,
        "url": payload.url,
        "generatedAt": payload.generated_at,
        "data": payload.data.to_dict(),
    }
    if payload.payment is not None:
        out["payment"] = payload.payment.to_dict()
    return out


def _envelope_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    payment = raw.get("payment")
    generated_at = _opt_int(raw.get("generatedAt", raw.get("timestamp")))
    return {
        "url": _opt_str(raw.get("url")) or "",
        "version": _opt_str(raw.get("version")) or PAYLOAD_VERSION,
        "generated_at": generated_at if generated_at is not None else 0,
        "payment": Payment.from_dict(payment) if isinstance(payment, Mapping) else None,
    }


# =============================================================================
# ✅ Validierung
# =============================================================================

def payload_kind(obj: Any) -> Optional[str]:
    """Liest den Diskriminator; 'type' ist der Schlüssel der 1.0-Karten."""
    if not isinstance(obj, Mapping):
        return None
    kind = obj.get("kind", obj.get("type"))
    return kind if isinstance(kind, str) else None


def _as_mapping(obj: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(obj, (VenuePayload, UserPayload, Payment)):
        return obj.to_dict()
    if isinstance(obj, Mapping):
        return obj
    return None


def _matches_schema(data: Any, schema_name: str) -> bool:
    if not isinstance(data, Mapping):
        return False
    for key, expected in PAYLOAD_SCHEMAS[schema_name]["required"].items():
        value = data.get(key)
        # bool ist in Python ein int, zählt hier aber nicht als ID
        if isinstance(value, bool) or not isinstance(value, expected):
            return False
    return True


def _has_version(raw: Mapping[str, Any]) -> bool:
    version = raw.get("version")
    if isinstance(version, bool) or not isinstance(version, (str, int, float)):
        return False
    return bool(str(version).strip())


def _embedded_payment_ok(raw: Mapping[str, Any]) -> bool:
    payment = raw.get("payment")
    return payment is None or is_valid_payment(payment)


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and ADDRESS_RE.fullmatch(value) is not None


def is_valid_payment(obj: Any) -> bool:
    raw = _as_mapping(obj)
    return raw is not None and is_valid_address(raw.get("address"))


def is_valid_venue_payload(obj: Any) -> bool:
    raw = _as_mapping(obj)
    if raw is None or payload_kind(raw) != "venue" or not _has_version(raw):
        return False
    return _matches_schema(raw.get("data"), "venue") and _embedded_payment_ok(raw)


def is_valid_user_payload(obj: Any) -> bool:
    raw = _as_mapping(obj)
    if raw is None or payload_kind(raw) != "user" or not _has_version(raw):
        return False
    data = raw.get("data")
    if not _matches_schema(data, "user") or not is_valid_address(data.get("walletAddress")):
        return False
    return _embedded_payment_ok(raw)


def is_supported_version(version: Optional[str]) -> bool:
    return version in SUPPORTED_VERSIONS


# --------------------------------------------------------------------------- #
# 🏅 Anzeige-Helfer
# --------------------------------------------------------------------------- #

def display_badges(payload: UserPayload, limit: int = MAX_DISPLAY_BADGES) -> Tuple[str, ...]:
    return payload.data.badges[: max(limit, 0)]


def display_skills(payload: UserPayload, limit: int = MAX_SKILLS) -> Tuple[str, ...]:
    return payload.data.skills[: max(limit, 0)]


def badge_info(badge_id: str) -> Dict[str, str]:
    info = BADGE_DEFINITIONS.get(badge_id)
    if info:
        return {"badge": badge_id, **info}
    return {"badge": badge_id, "name": badge_id, "description": "Special achievement", "icon": "🏆"}
