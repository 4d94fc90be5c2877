"""Create the schema for development and tests (production uses migrations)."""
from sqlalchemy.engine import Engine

import marketplace.models  # noqa: F401
from marketplace.core.logging import get_logger
from marketplace.models.base.base_model import Base

logger = get_logger(__name__)


def init_db(bind: Engine) -> None:
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema created", extra={"tables": len(Base.metadata.tables)})
