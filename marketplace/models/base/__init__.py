"""
Base model package: declarative base, abstract models, mixins and enums.
"""

from marketplace.models.base.base_model import Base, BaseModel, TimestampModel, new_id, utcnow
from marketplace.models.base.mixins import VersionMixin

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "VersionMixin",
    "new_id",
    "utcnow",
]
