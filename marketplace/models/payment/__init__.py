"""
Payment models package.
"""

from marketplace.models.payment.payment import Payment

__all__ = ["Payment"]
