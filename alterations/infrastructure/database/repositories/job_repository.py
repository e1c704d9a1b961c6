"""
Alteration job and part persistence.

Part writes are compare-and-swap updates keyed on ``(id, version)`` plus the
state the caller read; when another writer got there first the update touches
no rows and ``ConcurrencyConflictError`` is raised.
"""

from collections.abc import Iterable
from datetime import date
from typing import Any

from sqlalchemy import case, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from alterations.domain.scheduling.value_objects.enums import JobStatus
from alterations.domain.shared.exceptions import (
    ConcurrencyConflictError,
    DatabaseError,
    EntityNotFoundError,
    QRCodeNotFoundError,
)
from alterations.infrastructure.database.models import (
    AlterationJob,
    AlterationJobPart,
    utcnow,
)

from .base import BaseRepository

OPEN_WORK_STATUSES = (JobStatus.NOT_STARTED, JobStatus.IN_PROGRESS)


class JobRepository(BaseRepository[AlterationJob]):
    @property
    def entity_class(self) -> type[AlterationJob]:
        return AlterationJob

    # Lookups
    def lock_job(self, job_id: int) -> AlterationJob:
        """
        Load the job row with ``SELECT ... FOR UPDATE``.

        SQLite has no row locks and serialises writers on the database file
        instead; the clause is dropped there by SQLAlchemy.
        """
        try:
            statement = (
                select(AlterationJob)
                .where(AlterationJob.id == job_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            job = self.session.exec(statement).first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during lock_job: {str(e)}") from e
        if job is None:
            raise EntityNotFoundError("AlterationJob", job_id)
        return job

    def get_part(self, part_id: int) -> AlterationJobPart:
        try:
            part = self.session.get(AlterationJobPart, part_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during get_part: {str(e)}") from e
        if part is None:
            raise EntityNotFoundError("AlterationJobPart", part_id)
        return part

    def get_part_by_qr(self, qr_code: str) -> AlterationJobPart:
        try:
            statement = select(AlterationJobPart).where(
                AlterationJobPart.qr_code == qr_code
            )
            part = self.session.exec(
                statement.execution_options(populate_existing=True)
            ).first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during get_part_by_qr: {str(e)}") from e
        if part is None:
            raise QRCodeNotFoundError(qr_code)
        return part

    def parts_for_job(self, job_id: int) -> list[AlterationJobPart]:
        """Every part of the job in insertion order, re-read from the database."""
        try:
            statement = (
                select(AlterationJobPart)
                .where(AlterationJobPart.job_id == job_id)
                .order_by(AlterationJobPart.id)
                .execution_options(populate_existing=True)
            )
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during parts_for_job: {str(e)}") from e

    def add_part(self, part: AlterationJobPart) -> AlterationJobPart:
        try:
            self.session.add(part)
            self.session.flush()
            return part
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during add_part: {str(e)}") from e

    def jobs_with_unscheduled_parts(self, statuses: Iterable[JobStatus]) -> list[int]:
        """Ids of jobs in ``statuses`` that still have a part without a day."""
        try:
            statement = (
                select(AlterationJob.id)
                .join(AlterationJobPart, AlterationJobPart.job_id == AlterationJob.id)
                .where(
                    col(AlterationJob.status).in_(list(statuses)),
                    col(AlterationJobPart.scheduled_for).is_(None),
                )
                .distinct()
                .order_by(AlterationJob.id)
            )
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during jobs_with_unscheduled_parts: {str(e)}"
            ) from e

    # Board reads
    def parts_scheduled_on(self, day: date) -> list[tuple[AlterationJobPart, str]]:
        try:
            statement = (
                select(AlterationJobPart, AlterationJob.job_number)
                .join(AlterationJob, AlterationJobPart.job_id == AlterationJob.id)
                .where(AlterationJobPart.scheduled_for == day)
                .order_by(AlterationJobPart.id)
            )
            return [(part, job_number) for part, job_number in self.session.exec(statement)]
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during parts_scheduled_on: {str(e)}"
            ) from e

    def part_counts_between(self, start: date, end: date) -> dict[date, tuple[int, int]]:
        """Map of day to ``(total_parts, last_minute_parts)`` for scheduled parts."""
        try:
            statement = (
                select(
                    AlterationJobPart.scheduled_for,
                    func.count(AlterationJobPart.id),
                    func.sum(case((col(AlterationJob.last_minute).is_(True), 1), else_=0)),
                )
                .join(AlterationJob, AlterationJobPart.job_id == AlterationJob.id)
                .where(
                    AlterationJobPart.scheduled_for >= start,
                    AlterationJobPart.scheduled_for <= end,
                )
                .group_by(AlterationJobPart.scheduled_for)
            )
            return {
                day: (int(total), int(last_minute or 0))
                for day, total, last_minute in self.session.exec(statement)
            }
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during part_counts_between: {str(e)}"
            ) from e

    # Workload
    def open_minutes_for_staff(self, staff_id: int, day: date) -> int:
        """Estimated minutes of open work assigned to ``staff_id`` on ``day``."""
        try:
            statement = select(
                func.coalesce(func.sum(AlterationJobPart.estimated_time_minutes), 0)
            ).where(
                AlterationJobPart.assigned_to == staff_id,
                AlterationJobPart.scheduled_for == day,
                col(AlterationJobPart.status).in_(OPEN_WORK_STATUSES),
            )
            return int(self.session.exec(statement).one())
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during open_minutes_for_staff: {str(e)}"
            ) from e

    # Compare-and-swap writes
    def transition_part_status(
        self,
        part: AlterationJobPart,
        expected_status: JobStatus,
        new_status: JobStatus,
        assigned_to: int | None = None,
    ) -> None:
        values: dict[str, Any] = {"status": new_status}
        if assigned_to is not None:
            values["assigned_to"] = assigned_to
        self._swap_part(
            part, values, AlterationJobPart.status == expected_status
        )

    def schedule_part(
        self, part: AlterationJobPart, day: date, assigned_to: int | None
    ) -> None:
        """Place an unscheduled part on ``day``."""
        self._swap_part(
            part,
            {"scheduled_for": day, "assigned_to": assigned_to},
            col(AlterationJobPart.scheduled_for).is_(None),
        )

    def move_part(
        self,
        part: AlterationJobPart,
        old_day: date | None,
        new_day: date,
        assigned_to: int | None,
    ) -> None:
        if old_day is None:
            guard = col(AlterationJobPart.scheduled_for).is_(None)
        else:
            guard = AlterationJobPart.scheduled_for == old_day
        self._swap_part(
            part, {"scheduled_for": new_day, "assigned_to": assigned_to}, guard
        )

    def assign_part(self, part: AlterationJobPart, staff_id: int | None) -> None:
        self._swap_part(part, {"assigned_to": staff_id})

    def update_job_status(self, job: AlterationJob, new_status: JobStatus) -> None:
        self._swap_job(job, {"status": new_status})

    def update_due_date(self, job: AlterationJob, due_date: date) -> None:
        self._swap_job(job, {"due_date": due_date})

    def _swap_job(self, job: AlterationJob, values: dict[str, Any]) -> None:
        statement = (
            update(AlterationJob)
            .where(AlterationJob.id == job.id, AlterationJob.version == job.version)
            .values(
                **values,
                version=AlterationJob.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if self._execute(statement, "job update") != 1:
            raise ConcurrencyConflictError("AlterationJob", job.id)
        self.session.expire(job)

    def _swap_part(self, part: AlterationJobPart, values: dict[str, Any], *guards) -> None:
        statement = (
            update(AlterationJobPart)
            .where(
                AlterationJobPart.id == part.id,
                AlterationJobPart.version == part.version,
                *guards,
            )
            .values(
                **values,
                version=AlterationJobPart.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if self._execute(statement, "part update") != 1:
            raise ConcurrencyConflictError("AlterationJobPart", part.id)
        # Re-read on next access; the UPDATE bypassed the identity map
        self.session.expire(part)

    def _execute(self, statement, operation: str) -> int:
        try:
            return self.session.execute(statement).rowcount
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during {operation}: {str(e)}") from e
