"""Persistence operations for participations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus


class ParticipationRepository:
    """Repository for append-only participation history."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def count_active(self, task_id: UUID) -> int:
        """Count active participations of one task.

        Callers that decide admission must hold the task row lock first.
        """

        statement = select(func.count(Participation.id)).where(
            Participation.task_id == task_id,
            Participation.active.is_(True),
        )
        return int(self._session.scalar(statement) or 0)

    def find_active(self, task_id: UUID, volunteer_id: str) -> Participation | None:
        statement = select(Participation).where(
            Participation.task_id == task_id,
            Participation.volunteer_id == volunteer_id,
            Participation.active.is_(True),
        )
        return self._session.scalar(statement)

    def add_participation(
        self,
        *,
        task_id: UUID,
        volunteer_id: str,
        note: str | None,
        joined_at: datetime,
    ) -> Participation:
        """Insert one active participation row."""

        participation = Participation(
            task_id=task_id,
            volunteer_id=volunteer_id,
            active=True,
            note=note,
            joined_at=joined_at,
            left_at=None,
            updated_at=joined_at,
        )
        self._session.add(participation)
        self._session.flush()
        return participation

    def deactivate(
        self,
        *,
        participation: Participation,
        left_at: datetime,
    ) -> Participation:
        participation.active = False
        participation.left_at = left_at
        participation.updated_at = left_at
        self._session.flush()
        return participation

    def release_all_active(self, *, task_id: UUID, left_at: datetime) -> int:
        """Close every active participation of a task and return how many."""

        statement = (
            update(Participation)
            .where(
                Participation.task_id == task_id,
                Participation.active.is_(True),
            )
            .values(active=False, left_at=left_at, updated_at=left_at)
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(statement)
        return int(result.rowcount or 0)

    def list_active_for_task(self, task_id: UUID) -> list[Participation]:
        """List active participations ordered by join time."""

        statement = (
            select(Participation)
            .where(
                Participation.task_id == task_id,
                Participation.active.is_(True),
            )
            .order_by(Participation.joined_at.asc(), Participation.id.asc())
        )
        return list(self._session.scalars(statement).all())

    def list_by_volunteer(
        self,
        volunteer_id: str,
    ) -> list[tuple[Participation, Task]]:
        """List every participation of a volunteer, newest first."""

        statement = (
            select(Participation, Task)
            .join(Task, Task.id == Participation.task_id)
            .where(Participation.volunteer_id == volunteer_id)
            .order_by(Participation.joined_at.desc(), Participation.id.desc())
        )
        return [(row[0], row[1]) for row in self._session.execute(statement).all()]

    def count_by_volunteer(self, volunteer_id: str) -> tuple[int, int]:
        """Return ``(active, total)`` participation counts of a volunteer."""

        statement = select(
            func.count(Participation.id),
            func.count(Participation.id).filter(Participation.active.is_(True)),
        ).where(Participation.volunteer_id == volunteer_id)
        total, active = self._session.execute(statement).one()
        return int(active or 0), int(total or 0)

    def count_completed_for_volunteer(self, volunteer_id: str) -> int:
        """Count completed tasks the volunteer was still taking part in."""

        statement = (
            select(func.count(func.distinct(Participation.task_id)))
            .select_from(Participation)
            .join(Task, Task.id == Participation.task_id)
            .where(
                Participation.volunteer_id == volunteer_id,
                Participation.active.is_(True),
                Task.status == TaskStatus.COMPLETED,
            )
        )
        return int(self._session.scalar(statement) or 0)

    def count_volunteers_helped(self, creator_id: str) -> int:
        """Count distinct volunteers that ever joined one of the author's tasks."""

        statement = (
            select(func.count(func.distinct(Participation.volunteer_id)))
            .select_from(Participation)
            .join(Task, Task.id == Participation.task_id)
            .where(Task.creator_id == creator_id)
        )
        return int(self._session.scalar(statement) or 0)
