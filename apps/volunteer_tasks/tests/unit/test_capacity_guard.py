"""Unit tests for the capacity guard admission rules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus
from volunteer_tasks.domain.errors import TaskNotFoundError
from volunteer_tasks.services.capacity_guard import (
    AdmissionRejection,
    Admitted,
    CapacityGuard,
    Rejected,
    Released,
)
from volunteer_tasks.services.contention import TaskVersionConflict

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeTaskRepository:
    def __init__(self, *tasks: Task) -> None:
        self.tasks = {task.id: task for task in tasks}
        self.lock_timeouts: list[int] = []
        self.locked: list[UUID] = []
        self.claims = 0
        self.conflicts_to_raise = 0

    def get_task(self, task_id: UUID) -> Task | None:
        return self.tasks.get(task_id)

    def get_task_for_update(self, task_id: UUID) -> Task | None:
        self.locked.append(task_id)
        return self.tasks.get(task_id)

    def get_creator_id(self, task_id: UUID) -> str | None:
        task = self.tasks.get(task_id)
        return task.creator_id if task is not None else None

    def set_lock_timeout(self, timeout_ms: int) -> None:
        self.lock_timeouts.append(timeout_ms)

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
        task = Task(
            id=uuid4(),
            title=title,
            description=description,
            location=location,
            category_id=category_id,
            creator_id=creator_id,
            capacity=capacity,
            status=TaskStatus.OPEN,
            scheduled_at=scheduled_at,
            version=1,
            created_at=NOW,
            updated_at=NOW,
        )
        self.tasks[task.id] = task
        return task

    def compare_and_bump_version(self, *, task_id: UUID, expected_version: int) -> bool:
        if self.conflicts_to_raise:
            self.conflicts_to_raise -= 1
            return False
        task = self.tasks[task_id]
        if task.version != expected_version:
            return False
        task.version += 1
        self.claims += 1
        return True

    def set_status(
        self,
        *,
        task: Task,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> Task:
        task.status = status
        task.completed_at = completed_at
        return task

    def delete_task(self, task: Task) -> None:
        del self.tasks[task.id]


class FakeParticipationRepository:
    def __init__(self) -> None:
        self.rows: list[Participation] = []

    def count_active(self, task_id: UUID) -> int:
        return len(self._active(task_id))

    def find_active(self, task_id: UUID, volunteer_id: str) -> Participation | None:
        for row in self._active(task_id):
            if row.volunteer_id == volunteer_id:
                return row
        return None

    def add_participation(
        self,
        *,
        task_id: UUID,
        volunteer_id: str,
        note: str | None,
        joined_at: datetime,
    ) -> Participation:
        row = Participation(
            id=uuid4(),
            task_id=task_id,
            volunteer_id=volunteer_id,
            active=True,
            note=note,
            joined_at=joined_at,
            left_at=None,
            updated_at=joined_at,
        )
        self.rows.append(row)
        return row

    def deactivate(
        self,
        *,
        participation: Participation,
        left_at: datetime,
    ) -> Participation:
        participation.active = False
        participation.left_at = left_at
        return participation

    def release_all_active(self, *, task_id: UUID, left_at: datetime) -> int:
        active = self._active(task_id)
        for row in active:
            self.deactivate(participation=row, left_at=left_at)
        return len(active)

    def list_active_for_task(self, task_id: UUID) -> list[Participation]:
        return sorted(self._active(task_id), key=lambda row: row.joined_at)

    def list_by_volunteer(
        self,
        volunteer_id: str,
    ) -> list[tuple[Participation, Task]]:
        _ = volunteer_id
        return []

    def count_by_volunteer(self, volunteer_id: str) -> tuple[int, int]:
        rows = [row for row in self.rows if row.volunteer_id == volunteer_id]
        return sum(1 for row in rows if row.active), len(rows)

    def _active(self, task_id: UUID) -> list[Participation]:
        return [row for row in self.rows if row.task_id == task_id and row.active]


def _task(
    *,
    capacity: int = 2,
    status: TaskStatus = TaskStatus.OPEN,
    scheduled_at: datetime | None = None,
) -> Task:
    return Task(
        id=uuid4(),
        title="Sort food bank donations",
        description="Sort and shelve the weekend donations.",
        creator_id="alice",
        capacity=capacity,
        status=status,
        scheduled_at=scheduled_at,
        version=1,
        created_at=NOW,
        updated_at=NOW,
    )


def _guard(
    task_repository: FakeTaskRepository,
    participation_repository: FakeParticipationRepository,
    lock_timeout_ms: int | None = None,
) -> CapacityGuard:
    return CapacityGuard(
        task_repository=task_repository,
        participation_repository=participation_repository,
        lock_timeout_ms=lock_timeout_ms,
        clock=lambda: NOW,
    )


def test_try_admit_inserts_active_participation_under_lock() -> None:
    task = _task()
    task_repository = FakeTaskRepository(task)
    participation_repository = FakeParticipationRepository()
    guard = _guard(task_repository, participation_repository, lock_timeout_ms=1500)

    result = guard.try_admit(task.id, "bob", note="Bringing gloves")

    assert isinstance(result, Admitted)
    assert result.occupancy.active_count == 1
    assert result.occupancy.capacity == 2
    assert result.participation.volunteer_id == "bob"
    assert result.participation.note == "Bringing gloves"
    assert result.participation.joined_at == NOW
    assert task_repository.locked == [task.id]
    assert task_repository.lock_timeouts == [1500]
    assert task.version == 2


def test_try_admit_skips_lock_timeout_when_unset() -> None:
    task = _task()
    task_repository = FakeTaskRepository(task)
    guard = _guard(task_repository, FakeParticipationRepository())

    guard.try_admit(task.id, "bob")

    assert task_repository.lock_timeouts == []


def test_try_admit_rejects_already_active_volunteer_first() -> None:
    task = _task(status=TaskStatus.COMPLETED)
    task_repository = FakeTaskRepository(task)
    participation_repository = FakeParticipationRepository()
    participation_repository.add_participation(
        task_id=task.id,
        volunteer_id="bob",
        note=None,
        joined_at=NOW,
    )
    guard = _guard(task_repository, participation_repository)

    result = guard.try_admit(task.id, "bob")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.ALREADY_ACTIVE


def test_try_admit_rejects_creator_before_status_checks() -> None:
    task = _task(status=TaskStatus.CANCELLED)
    guard = _guard(FakeTaskRepository(task), FakeParticipationRepository())

    result = guard.try_admit(task.id, "alice")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.IS_CREATOR


@pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
def test_try_admit_rejects_terminal_task_before_expiry(status: TaskStatus) -> None:
    task = _task(status=status, scheduled_at=NOW - timedelta(days=1))
    guard = _guard(FakeTaskRepository(task), FakeParticipationRepository())

    result = guard.try_admit(task.id, "bob")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.TASK_NOT_JOINABLE


def test_try_admit_rejects_expired_task_before_capacity() -> None:
    task = _task(capacity=1, scheduled_at=NOW - timedelta(minutes=1))
    participation_repository = FakeParticipationRepository()
    participation_repository.add_participation(
        task_id=task.id,
        volunteer_id="carol",
        note=None,
        joined_at=NOW,
    )
    guard = _guard(FakeTaskRepository(task), participation_repository)

    result = guard.try_admit(task.id, "bob")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.TASK_EXPIRED


def test_try_admit_accepts_naive_future_schedule() -> None:
    task = _task(scheduled_at=(NOW + timedelta(hours=2)).replace(tzinfo=None))
    guard = _guard(FakeTaskRepository(task), FakeParticipationRepository())

    assert isinstance(guard.try_admit(task.id, "bob"), Admitted)


def test_try_admit_rejects_when_capacity_is_reached_without_writing() -> None:
    task = _task(capacity=1)
    task_repository = FakeTaskRepository(task)
    participation_repository = FakeParticipationRepository()
    guard = _guard(task_repository, participation_repository)
    assert isinstance(guard.try_admit(task.id, "bob"), Admitted)

    result = guard.try_admit(task.id, "carol")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.CAPACITY_EXCEEDED
    assert result.active_count == 1
    assert participation_repository.count_active(task.id) == 1
    assert task_repository.claims == 1


def test_try_admit_raises_version_conflict_before_inserting() -> None:
    task = _task()
    task_repository = FakeTaskRepository(task)
    task_repository.conflicts_to_raise = 1
    participation_repository = FakeParticipationRepository()
    guard = _guard(task_repository, participation_repository)

    with pytest.raises(TaskVersionConflict):
        guard.try_admit(task.id, "bob")

    assert participation_repository.rows == []


def test_try_admit_unknown_task_raises_not_found() -> None:
    guard = _guard(FakeTaskRepository(), FakeParticipationRepository())

    with pytest.raises(TaskNotFoundError):
        guard.try_admit(uuid4(), "bob")


def test_release_closes_participation_once() -> None:
    task = _task(capacity=1)
    participation_repository = FakeParticipationRepository()
    guard = _guard(FakeTaskRepository(task), participation_repository)
    admitted = guard.try_admit(task.id, "bob")
    assert isinstance(admitted, Admitted)

    first = guard.release(task.id, "bob")
    second = guard.release(task.id, "bob")

    assert isinstance(first, Released)
    assert first.occupancy.active_count == 0
    assert first.participation.active is False
    assert first.participation.left_at == NOW
    assert isinstance(second, Rejected)
    assert second.reason == AdmissionRejection.NOT_ACTIVE


def test_release_rejects_leaving_completed_task() -> None:
    task = _task()
    participation_repository = FakeParticipationRepository()
    guard = _guard(FakeTaskRepository(task), participation_repository)
    assert isinstance(guard.try_admit(task.id, "bob"), Admitted)
    task.status = TaskStatus.COMPLETED

    result = guard.release(task.id, "bob")

    assert isinstance(result, Rejected)
    assert result.reason == AdmissionRejection.TASK_CLOSED
    assert participation_repository.count_active(task.id) == 1
