"""Persistence operations for tasks."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from volunteer_tasks.db.models.task import Task, TaskStatus
from volunteer_tasks.domain.clock import utc_now


class TaskRepository:
    """Repository for task rows and their optimistic version counter."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_task(self, task_id: UUID) -> Task | None:
        """Fetch task by id."""

        statement = select(Task).where(Task.id == task_id)
        return self._session.scalar(statement)

    def get_task_for_update(self, task_id: UUID) -> Task | None:
        """Fetch and lock one task row by id.

        ``populate_existing`` makes sure an identity-mapped instance is
        refreshed with the row as seen once the lock is granted.
        """

        statement = (
            select(Task)
            .where(Task.id == task_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalar(statement)

    def get_creator_id(self, task_id: UUID) -> str | None:
        statement = select(Task.creator_id).where(Task.id == task_id)
        return self._session.scalar(statement)

    def set_lock_timeout(self, timeout_ms: int) -> None:
        """Bound lock waits for the current transaction where supported."""

        if self._session.get_bind().dialect.name != "postgresql":
            return
        self._session.execute(
            select(func.set_config("lock_timeout", f"{int(timeout_ms)}ms", True))
        )

    def add_task(
        self,
        *,
        title: str,
        description: str,
        location: str | None,
        category_id: str | None,
        creator_id: str,
        capacity: int,
        scheduled_at: datetime | None,
    ) -> Task:
        """Persist a newly created open task."""

        now = utc_now()
        task = Task(
            title=title,
            description=description,
            location=location,
            category_id=category_id,
            creator_id=creator_id,
            capacity=capacity,
            status=TaskStatus.OPEN,
            scheduled_at=scheduled_at,
            version=1,
            created_at=now,
            updated_at=now,
            completed_at=None,
        )
        self._session.add(task)
        self._session.flush()
        return task

    def compare_and_bump_version(self, *, task_id: UUID, expected_version: int) -> bool:
        """Increment task version only if nobody else changed it first."""

        statement = (
            update(Task)
            .where(Task.id == task_id, Task.version == expected_version)
            .values(version=Task.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session="evaluate")
        )
        result = self._session.execute(statement)
        return result.rowcount == 1

    def set_status(
        self,
        *,
        task: Task,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> Task:
        task.status = status
        task.completed_at = completed_at
        task.updated_at = utc_now()
        self._session.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self._session.delete(task)
        self._session.flush()

    def count_by_creator(self, creator_id: str) -> tuple[int, int, int]:
        """Return ``(created, completed, cancelled)`` task counts of an author."""

        statement = select(
            func.count(Task.id),
            func.count(Task.id).filter(Task.status == TaskStatus.COMPLETED),
            func.count(Task.id).filter(Task.status == TaskStatus.CANCELLED),
        ).where(Task.creator_id == creator_id)
        created, completed, cancelled = self._session.execute(statement).one()
        return int(created or 0), int(completed or 0), int(cancelled or 0)
