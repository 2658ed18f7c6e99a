"""Atomic admit-or-reject primitive for task participation.

Every join and leave passes through ``CapacityGuard``. Each call runs inside
the caller's transaction and never commits:

1. the task row is loaded under ``SELECT ... FOR UPDATE``;
2. the guards are evaluated and the active participant count is read;
3. the task version is advanced with a compare-and-swap;
4. the participation row is inserted or closed.

Step 3 raises ``TaskVersionConflict`` when another writer committed against
the same task in between, which ``ContentionRetrier`` turns into a retry.
Together with the row lock this keeps ``active <= capacity`` on backends
with and without row-level locking.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus
from volunteer_tasks.domain.clock import as_utc, utc_now
from volunteer_tasks.domain.task_lifecycle import Occupancy
from volunteer_tasks.services.contention import claim_task, lock_task
from volunteer_tasks.services.ports import (
    ParticipationRepositoryProtocol,
    TaskRepositoryProtocol,
)


class AdmissionRejection(enum.StrEnum):
    """Business reasons a join or leave is refused."""

    ALREADY_ACTIVE = "already_active"
    IS_CREATOR = "is_creator"
    TASK_NOT_JOINABLE = "task_not_joinable"
    TASK_EXPIRED = "task_expired"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NOT_ACTIVE = "not_active"
    TASK_CLOSED = "task_closed"


@dataclass(slots=True, frozen=True)
class Admitted:
    """A join that inserted a new active participation."""

    task: Task
    participation: Participation
    occupancy: Occupancy


@dataclass(slots=True, frozen=True)
class Released:
    """A leave that closed the caller's active participation."""

    task: Task
    participation: Participation
    occupancy: Occupancy


@dataclass(slots=True, frozen=True)
class Rejected:
    """A refused join or leave; nothing was written."""

    reason: AdmissionRejection
    task: Task
    active_count: int | None = None


AdmissionResult = Admitted | Rejected
ReleaseResult = Released | Rejected


class CapacityGuard:
    """Single choke point enforcing participant capacity per task."""

    def __init__(
        self,
        *,
        task_repository: TaskRepositoryProtocol,
        participation_repository: ParticipationRepositoryProtocol,
        lock_timeout_ms: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._task_repository = task_repository
        self._participation_repository = participation_repository
        self._lock_timeout_ms = lock_timeout_ms
        self._clock = clock

    def try_admit(
        self,
        task_id: UUID,
        volunteer_id: str,
        *,
        note: str | None = None,
    ) -> AdmissionResult:
        """Admit ``volunteer_id`` to the task or say why not.

        Guards are evaluated in a fixed order so the reported reason is
        deterministic: already active, creator, terminal status, expired
        schedule, then capacity.
        """

        task = lock_task(
            self._task_repository,
            task_id,
            lock_timeout_ms=self._lock_timeout_ms,
        )
        observed_version = task.version
        now = self._clock()

        existing = self._participation_repository.find_active(task.id, volunteer_id)
        if existing is not None:
            return Rejected(reason=AdmissionRejection.ALREADY_ACTIVE, task=task)
        if volunteer_id == task.creator_id:
            return Rejected(reason=AdmissionRejection.IS_CREATOR, task=task)
        if task.status.is_terminal:
            return Rejected(reason=AdmissionRejection.TASK_NOT_JOINABLE, task=task)
        if task.scheduled_at is not None and as_utc(task.scheduled_at) < now:
            return Rejected(reason=AdmissionRejection.TASK_EXPIRED, task=task)

        active_count = self._participation_repository.count_active(task.id)
        if active_count >= task.capacity:
            return Rejected(
                reason=AdmissionRejection.CAPACITY_EXCEEDED,
                task=task,
                active_count=active_count,
            )

        claim_task(self._task_repository, task, observed_version=observed_version)
        participation = self._participation_repository.add_participation(
            task_id=task.id,
            volunteer_id=volunteer_id,
            note=note,
            joined_at=now,
        )
        return Admitted(
            task=task,
            participation=participation,
            occupancy=Occupancy(active_count=active_count + 1, capacity=task.capacity),
        )

    def release(self, task_id: UUID, volunteer_id: str) -> ReleaseResult:
        """Close the volunteer's active participation, at most once."""

        task = lock_task(
            self._task_repository,
            task_id,
            lock_timeout_ms=self._lock_timeout_ms,
        )
        observed_version = task.version

        participation = self._participation_repository.find_active(
            task.id, volunteer_id
        )
        if participation is None:
            return Rejected(reason=AdmissionRejection.NOT_ACTIVE, task=task)
        if task.status == TaskStatus.COMPLETED:
            return Rejected(reason=AdmissionRejection.TASK_CLOSED, task=task)

        claim_task(self._task_repository, task, observed_version=observed_version)
        self._participation_repository.deactivate(
            participation=participation,
            left_at=self._clock(),
        )
        active_count = self._participation_repository.count_active(task.id)
        return Released(
            task=task,
            participation=participation,
            occupancy=Occupancy(active_count=active_count, capacity=task.capacity),
        )
