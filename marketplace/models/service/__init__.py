"""
Service catalogue models package.
"""

from marketplace.models.service.service import (
    GroupBookingSettings,
    Service,
    ServiceAddOn,
    ServiceBundle,
    service_bundle_items,
)

__all__ = [
    "GroupBookingSettings",
    "Service",
    "ServiceAddOn",
    "ServiceBundle",
    "service_bundle_items",
]
