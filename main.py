# =============================================================================
# 🚀 PianoStyle QR – Hauptapplikation (main.py)
# =============================================================================

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Dict, List

from fastapi import FastAPI
from dotenv import load_dotenv

# -------------------------------------------------------------------------
# 1️⃣ .env laden (muss ganz oben sein!)
# -------------------------------------------------------------------------
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from database import Base, engine  # noqa: E402
import models  # noqa: E402,F401  (registriert Tabellen)
from routes import methods, scan  # noqa: E402
from routes.qr import payment_router, user_router, venue_router  # noqa: E402
from utils import settings  # noqa: E402

# -------------------------------------------------------------------------
# 2️⃣ FastAPI App
# -------------------------------------------------------------------------
app = FastAPI(title="PianoStyle QR", version="1.1")

if os.getenv("AUTO_CREATE_TABLES", "1") in {"1", "true", "yes"}:
    Base.metadata.create_all(bind=engine)

# -------------------------------------------------------------------------
# 3️⃣ Router registrieren
# -------------------------------------------------------------------------
app.include_router(payment_router)
app.include_router(venue_router)
app.include_router(user_router)
app.include_router(scan.router)
app.include_router(methods.router)


# -------------------------------------------------------------------------
# 4️⃣ Health
# -------------------------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, object]:
    return {
        "status": "ok",
        "app_domain": settings.APP_DOMAIN,
        "chain_id": settings.DEFAULT_CHAIN_ID,
    }


# -------------------------------------------------------------------------
# 5️⃣ Debug Route
# -------------------------------------------------------------------------
@app.get("/debug/routes")
def debug_routes() -> List[Dict[str, str]]:
    return [{"path": r.path, "name": r.name} for r in app.routes]
