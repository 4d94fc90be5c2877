"""
Service catalogue repositories package.
"""

from marketplace.repositories.service.service_repository import ServiceRepository

__all__ = ["ServiceRepository"]
