# =============================================================================
# 🎹 models/venue.py
# Piano-Venue (Datenquelle für Venue-QR-Karten)
# =============================================================================

from __future__ import annotations
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class Venue(Base):
    __tablename__ = "venues"

    # =========================================================================
    # 🧩 Basisinformationen
    # =========================================================================
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    city: Mapped[str] = mapped_column(String(120), default="")
    address: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)

    # =========================================================================
    # 🎹 Piano
    # =========================================================================
    has_piano: Mapped[bool] = mapped_column(Boolean, default=True)
    piano_type: Mapped[Optional[str]] = mapped_column(String(100))
    piano_condition: Mapped[Optional[str]] = mapped_column(String(50))

    # =========================================================================
    # 📞 Kontakt
    # =========================================================================
    operating_hours: Mapped[Optional[str]] = mapped_column(String(255))
    contact_info: Mapped[Optional[str]] = mapped_column(String(255))
    website: Mapped[Optional[str]] = mapped_column(String(255))
    social_links: Mapped[Optional[dict]] = mapped_column(JSON)

    # 💸 Empfänger für Trinkgeld-Zahlungen
    wallet_address: Mapped[Optional[str]] = mapped_column(String(42))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Venue id={self.id} slug='{self.slug}'>"
