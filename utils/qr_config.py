"""
utils/qr_config.py
────────────────────────────────────────────
Globale QR-Design- und Kartenkonfiguration
für PianoStyle-QR-Karten (Venue & Profil).

Definiert Render-Standardwerte, Fehlerkorrektur-Stufen,
Karten-Themes und Druckformate.
────────────────────────────────────────────
"""

from typing import Dict, Any

from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

# ─────────────────────────────────────────────
# 🎨 STANDARD-RENDERING
# ─────────────────────────────────────────────
QR_DEFAULT_STYLE: Dict[str, Any] = {
    "size": 200,
    "dark_color": "#000000",
    "light_color": "#FFFFFF",
    "margin": 2,
    "module_style": "square",
    "error_correction": "M",
}

# Payloads, die auf Papier überleben müssen (Karten, Sticker, Poster)
PRINT_ERROR_CORRECTION = "H"

ERROR_CORRECTION_LEVELS: Dict[str, int] = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

MODULE_STYLES = ("square", "rounded", "dots", "soft")

# ─────────────────────────────────────────────
# 🪄 KARTEN-THEMES
# ─────────────────────────────────────────────
CARD_THEMES: Dict[str, Dict[str, Any]] = {
    "piano": {
        "primary_color": "#1e3a8a",
        "secondary_color": "#fbbf24",
        "text_color": "#1f2937",
        "background_color": "#ffffff",
        "qr_background_color": "#ffffff",
        "qr_foreground_color": "#000000",
        "show_app_description": True,
        "show_branding": True,
    },
    "elegant": {
        "primary_color": "#4c1d95",
        "secondary_color": "#e879f9",
        "text_color": "#374151",
        "background_color": "#faf5ff",
        "show_app_description": True,
        "show_branding": True,
    },
    "minimal": {
        "primary_color": "#000000",
        "secondary_color": "#6b7280",
        "text_color": "#111827",
        "background_color": "#ffffff",
        "show_app_description": False,
        "show_branding": False,
    },
    "vibrant": {
        "primary_color": "#dc2626",
        "secondary_color": "#ea580c",
        "text_color": "#991b1b",
        "background_color": "#fef2f2",
        "show_app_description": True,
        "show_branding": True,
    },
}

# ─────────────────────────────────────────────
# 🖨️ DRUCKFORMATE (Zoll @ 300 dpi)
# ─────────────────────────────────────────────
QR_CARD_SIZES: Dict[str, Dict[str, Any]] = {
    "business-card": {"width": 3.5, "height": 2, "unit": "in", "dpi": 300},
    "postcard": {"width": 4, "height": 6, "unit": "in", "dpi": 300},
    "poster": {"width": 8.5, "height": 11, "unit": "in", "dpi": 300},
    "sticker": {"width": 3, "height": 3, "unit": "in", "dpi": 300},
    "table-tent": {"width": 4, "height": 6, "unit": "in", "dpi": 300},
    "badge": {"width": 3, "height": 4, "unit": "in", "dpi": 300},
}

APP_DESCRIPTION = (
    "Discover piano venues near you. Scan to view this venue on PianoStyle, "
    "leave a review or send a PXP tip."
)
PROFILE_DESCRIPTION = "Scan to view this PianoStyle profile and send a PXP tip."


# ─────────────────────────────────────────────
# 🧠 FUNKTION: Theme abrufen
# ─────────────────────────────────────────────
def get_card_theme(theme_name: str = "piano") -> Dict[str, Any]:
    """
    Gibt das gewünschte Karten-Theme zurück.
    QR-Farben fallen auf Schwarz/Weiß zurück, wenn das Theme keine setzt.
    """
    theme = CARD_THEMES.get(theme_name, CARD_THEMES["piano"])
    return {
        "qr_foreground_color": QR_DEFAULT_STYLE["dark_color"],
        "qr_background_color": QR_DEFAULT_STYLE["light_color"],
        **theme,
        "name": theme_name if theme_name in CARD_THEMES else "piano",
    }


def card_pixel_size(layout: str) -> Dict[str, int]:
    """Pixelmaße eines Druckformats (Fallback: business-card)."""
    dims = QR_CARD_SIZES.get(layout, QR_CARD_SIZES["business-card"])
    return {
        "width": int(dims["width"] * dims["dpi"]),
        "height": int(dims["height"] * dims["dpi"]),
    }
