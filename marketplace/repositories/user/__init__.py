"""
User repositories package.
"""

from marketplace.repositories.user.user_repository import UserRepository

__all__ = ["UserRepository"]
