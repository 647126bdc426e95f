# =============================================================================
# 📦 models/__init__.py
# =============================================================================

from .venue import Venue
from .user import UserProfile

__all__ = [
    "Venue",
    "UserProfile",
]
