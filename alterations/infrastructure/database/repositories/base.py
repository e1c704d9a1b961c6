"""
Base repository implementation providing generic persistence operations.

Repositories never commit: the unit of work owns the transaction boundary so
that a scheduling call either lands completely or not at all. Unexpected
SQLAlchemy failures are translated into ``DatabaseError``.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel

from alterations.domain.shared.exceptions import DatabaseError, EntityNotFoundError

EntityType = TypeVar("EntityType", bound=SQLModel)


class BaseRepository(Generic[EntityType], ABC):
    """
    Base repository class providing generic lookups and staging of new rows.

    Concrete repositories inherit from this class and provide the
    ``entity_class`` property.
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLModel database session
        """
        self.session = session

    @property
    @abstractmethod
    def entity_class(self) -> type[EntityType]:
        """Return the SQLModel entity class managed by this repository."""

    @property
    def entity_name(self) -> str:
        return self.entity_class.__name__

    def add(self, entity: EntityType) -> EntityType:
        """
        Stage a new entity and flush it so generated ids are available.

        Raises:
            DatabaseError: If database operation fails
        """
        try:
            self.session.add(entity)
            self.session.flush()
            return entity
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during add: {str(e)}") from e

    def get_by_id(self, entity_id: int) -> EntityType | None:
        try:
            return self.session.get(self.entity_class, entity_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during get_by_id: {str(e)}") from e

    def get_by_id_required(self, entity_id: int) -> EntityType:
        """
        Get entity by ID, raising exception if not found.

        Raises:
            EntityNotFoundError: If entity not found
            DatabaseError: If database operation fails
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return entity
