# =============================================================================
# ⚙️ utils/settings.py
# Zentrale Laufzeit-Konfiguration (aus .env / Umgebungsvariablen)
# =============================================================================

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# 🔹 .env aus dem Projektverzeichnis laden (falls vorhanden)
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# 🌐 Web-Fallback für QR-Payloads
APP_DOMAIN: str = os.getenv("APP_DOMAIN", "https://pianostyle.app").rstrip("/")

# 🔗 URI-Schemata
DEEP_LINK_SCHEME: str = os.getenv("PIANOSTYLE_SCHEME", "pianostyle")
PAYMENT_SCHEME: str = os.getenv("PAYMENT_SCHEME", "celo")

# ⛓️ Celo Alfajores Testnet
DEFAULT_CHAIN_ID: int = _int_env("DEFAULT_CHAIN_ID", 44787)

# 📷 Scanner
SCAN_DELAY_MS: int = _int_env("QR_SCAN_DELAY_MS", 500)
SCAN_COOLDOWN_MS: int = _int_env("QR_SCAN_COOLDOWN_MS", 1000)
SCAN_HISTORY_SIZE: int = _int_env("QR_SCAN_HISTORY", 5)
