"""
Service layer root package.

Each subpackage implements booking use-cases on top of:

- SQLAlchemy models (marketplace.models.*)
- Repositories (marketplace.repositories.*)
- Pydantic schemas (marketplace.schemas.*)
- Common service infrastructure (marketplace.services.base.*)

Every public operation returns a ServiceResult; sessions are wired through
marketplace.services.base.service_factory.ServiceFactory.
"""
