# =============================================================================
# 👤 models/user.py
# Öffentliches PianoStyle-Profil (Datenquelle für Profil-QR-Karten)
# =============================================================================

from __future__ import annotations
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Integer, Float, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    # =========================================================================
    # 🧩 Basisinformationen
    # =========================================================================
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(150))
    profile_slug: Mapped[Optional[str]] = mapped_column(String(120))

    # =========================================================================
    # 🖼️ Profil
    # =========================================================================
    bio: Mapped[Optional[str]] = mapped_column(Text)
    title: Mapped[Optional[str]] = mapped_column(String(150))
    location: Mapped[Optional[str]] = mapped_column(String(150))
    avatar: Mapped[Optional[str]] = mapped_column(String(255))
    badges: Mapped[Optional[list]] = mapped_column(JSON)
    skills: Mapped[Optional[list]] = mapped_column(JSON)
    social_links: Mapped[Optional[dict]] = mapped_column(JSON)
    public_profile: Mapped[bool] = mapped_column(Boolean, default=True)

    # =========================================================================
    # 📊 Statistik
    # =========================================================================
    total_pxp_earned: Mapped[float] = mapped_column(Float, default=0)
    venues_discovered: Mapped[int] = mapped_column(Integer, default=0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)

    # =========================================================================
    # 🕒 Zeitstempel
    # =========================================================================
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, username='{self.username}', wallet='{self.wallet_address}')>"
