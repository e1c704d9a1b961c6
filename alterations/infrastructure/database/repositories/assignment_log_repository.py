from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from alterations.domain.shared.exceptions import DatabaseError
from alterations.infrastructure.database.models import AssignmentLog

from .base import BaseRepository


class AssignmentLogRepository(BaseRepository[AssignmentLog]):
    """Append-only history of part assignee changes."""

    @property
    def entity_class(self) -> type[AssignmentLog]:
        return AssignmentLog

    def for_part(self, part_id: int, limit: int = 50) -> list[AssignmentLog]:
        """Assignee changes of one part, newest first."""
        try:
            statement = (
                select(AssignmentLog)
                .where(AssignmentLog.part_id == part_id)
                .order_by(col(AssignmentLog.timestamp).desc(), col(AssignmentLog.id).desc())
                .limit(limit)
            )
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during for_part: {str(e)}") from e
