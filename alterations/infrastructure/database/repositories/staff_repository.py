from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from alterations.domain.shared.exceptions import DatabaseError
from alterations.infrastructure.database.models import StaffMember, StaffSkill

from .base import BaseRepository


class StaffRepository(BaseRepository[StaffMember]):
    """Staff directory: roles, working flags, weekly schedules and skills."""

    @property
    def entity_class(self) -> type[StaffMember]:
        return StaffMember

    def list_schedulable(self, roles: Iterable[str]) -> list[StaffMember]:
        """Active staff allowed to work whose role is in ``roles``, by id."""
        normalised = [role.lower() for role in roles]
        try:
            statement = (
                select(StaffMember)
                .where(
                    StaffMember.is_active == True,  # noqa: E712
                    StaffMember.can_work == True,  # noqa: E712
                    func.lower(StaffMember.role).in_(normalised),
                )
                .order_by(StaffMember.id)
            )
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during list_schedulable: {str(e)}"
            ) from e

    def with_skill(
        self, skill: str, min_proficiency: int
    ) -> list[tuple[StaffMember, int]]:
        """Active, working staff holding ``skill`` at ``min_proficiency`` or better."""
        try:
            statement = (
                select(StaffMember, StaffSkill.proficiency)
                .join(StaffSkill, StaffSkill.staff_id == StaffMember.id)
                .where(
                    func.lower(StaffSkill.skill) == skill.strip().lower(),
                    StaffSkill.proficiency >= min_proficiency,
                    StaffMember.is_active == True,  # noqa: E712
                    StaffMember.can_work == True,  # noqa: E712
                )
                .order_by(StaffMember.id)
            )
            return [(staff, proficiency) for staff, proficiency in self.session.exec(statement)]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during with_skill: {str(e)}") from e
