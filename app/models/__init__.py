"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, MasjidScopedMixin, SoftDeleteMixin, StatusMixin
from app.models.masjid import Masjid, MasjidServicePlan, MasjidTeacher


__all__ = [
    # Base classes
    "BaseModel",
    "MasjidScopedMixin",
    "SoftDeleteMixin",
    "StatusMixin",

    # Masjid
    "Masjid",
    "MasjidServicePlan",
    "MasjidTeacher",
]
