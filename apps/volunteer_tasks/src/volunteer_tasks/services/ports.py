"""Repository and session ports consumed by the task services."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by services."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class TaskRepositoryProtocol(Protocol):
    """Task repository contract consumed by services."""

    def get_task(self, task_id: UUID) -> Task | None: ...

    def get_task_for_update(self, task_id: UUID) -> Task | None: ...

    def get_creator_id(self, task_id: UUID) -> str | None: ...

    def set_lock_timeout(self, timeout_ms: int) -> None: ...

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
    ) -> Task: ...

    def compare_and_bump_version(
        self, *, task_id: UUID, expected_version: int
    ) -> bool: ...

    def set_status(
        self,
        *,
        task: Task,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> Task: ...

    def delete_task(self, task: Task) -> None: ...

    def count_by_creator(self, creator_id: str) -> tuple[int, int, int]: ...


class ParticipationRepositoryProtocol(Protocol):
    """Participation repository contract consumed by services."""

    def count_active(self, task_id: UUID) -> int: ...

    def find_active(self, task_id: UUID, volunteer_id: str) -> Participation | None: ...

    def add_participation(
        self,
        *,
        task_id: UUID,
        volunteer_id: str,
        note: str | None,
        joined_at: datetime,
    ) -> Participation: ...

    def deactivate(
        self,
        *,
        participation: Participation,
        left_at: datetime,
    ) -> Participation: ...

    def release_all_active(self, *, task_id: UUID, left_at: datetime) -> int: ...

    def list_active_for_task(self, task_id: UUID) -> list[Participation]: ...

    def list_by_volunteer(
        self,
        volunteer_id: str,
    ) -> list[tuple[Participation, Task]]: ...

    def count_by_volunteer(self, volunteer_id: str) -> tuple[int, int]: ...

    def count_completed_for_volunteer(self, volunteer_id: str) -> int: ...

    def count_volunteers_helped(self, creator_id: str) -> int: ...
