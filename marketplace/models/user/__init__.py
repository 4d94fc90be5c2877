"""
User models package.
"""

from marketplace.models.user.user import User

__all__ = ["User"]
