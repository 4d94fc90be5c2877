"""
User repository.
"""

from sqlalchemy.orm import Session

from marketplace.models.user.user import User
from marketplace.repositories.base.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Users and their contact details."""

    def __init__(self, db: Session):
        super().__init__(User, db)
