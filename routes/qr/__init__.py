# routes/qr/__init__.py
# =============================================================================
# 🚀 QR Routes Package (PianoStyle QR)
# =============================================================================

from routes.qr.payment import router as payment_router
from routes.qr.venue import router as venue_router
from routes.qr.user import router as user_router

__all__ = [
    "payment_router",
    "venue_router",
    "user_router",
]
