"""
Base repository with standardized data access and error translation.

Repositories never commit: they add, flush and query inside whatever unit of
work the calling service opened through the TransactionManager.
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    RepositoryError,
)
from marketplace.core.logging import get_logger
from marketplace.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.

    Provides point lookups, creation, guarded updates and counting for a
    single model class.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Read Operations ====================

    def get_by_id(self, entity_id: str) -> Optional[ModelType]:
        """Fetch an entity by primary key, or None."""
        try:
            return self.db.get(self.model, entity_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Get {self.model.__name__} failed: {str(e)}") from e

    def get_or_raise(self, entity_id: str) -> ModelType:
        """
        Fetch an entity by primary key.

        Raises:
            EntityNotFoundError: If no row has that key
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.model.__name__, entity_id)
        return entity

    def find(
        self,
        *criteria,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """Select entities matching all criteria."""
        self.db.flush()
        query = select(self.model).where(*criteria)
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

    def find_one(self, *criteria) -> Optional[ModelType]:
        self.db.flush()
        query = select(self.model).where(*criteria).limit(1)
        return self.db.execute(query).scalars().first()

    def count(self, *criteria) -> int:
        self.db.flush()
        query = select(func.count()).select_from(self.model).where(*criteria)
        return self.db.execute(query).scalar_one()

    # ==================== Write Operations ====================

    def create(self, entity: ModelType) -> ModelType:
        """
        Add a new entity and flush it so generated values are available.

        Raises:
            EntityAlreadyExistsError: If a unique constraint rejects the row
            RepositoryError: For other database failures
        """
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as e:
            raise EntityAlreadyExistsError(
                f"{self.model.__name__} violates a constraint",
                details={"error": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Create failed: {str(e)}") from e

        logger.debug(f"Created {self.model.__name__} with id: {entity.id}")
        return entity

    def create_many(self, entities: List[ModelType]) -> List[ModelType]:
        """Add several entities in one flush."""
        try:
            self.db.add_all(entities)
            self.db.flush()
        except IntegrityError as e:
            raise EntityAlreadyExistsError(
                f"{self.model.__name__} violates a constraint",
                details={"error": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Bulk create failed: {str(e)}") from e
        return entities

    def update_where(self, criteria: Sequence[Any], values: Dict[str, Any]) -> int:
        """
        Bulk UPDATE rows matching ``criteria``.

        Returns:
            Number of rows changed
        """
        try:
            self.db.flush()
            result = self.db.execute(
                update(self.model)
                .where(*criteria)
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Update {self.model.__name__} failed: {str(e)}") from e
        return result.rowcount

    def update_guarded(
        self,
        entity: ModelType,
        expected: Dict[str, Any],
        values: Dict[str, Any],
    ) -> bool:
        """
        Update one row only if its current column values match ``expected``.

        Values in ``expected`` may be a single value or a collection of
        acceptable values. The entity is refreshed after a successful update.

        Returns:
            True when the row matched and was updated
        """
        criteria = [self.model.id == entity.id]
        for column, value in expected.items():
            attribute = getattr(self.model, column)
            if isinstance(value, (set, frozenset, list, tuple)):
                criteria.append(attribute.in_(list(value)))
            else:
                criteria.append(attribute == value)

        if hasattr(self.model, "version") and "version" not in values:
            values = {**values, "version": self.model.version + 1}

        changed = self.update_where(criteria, values) == 1
        if changed:
            self.db.refresh(entity)
        return changed
