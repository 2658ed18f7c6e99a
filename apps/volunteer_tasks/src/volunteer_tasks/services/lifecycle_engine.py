"""Applies task status transitions inside the caller's transaction."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from volunteer_tasks.db.models.task import Task, TaskStatus
from volunteer_tasks.domain.clock import utc_now
from volunteer_tasks.domain.task_lifecycle import (
    CapacityStatusPolicy,
    LifecycleTrigger,
    Occupancy,
    ensure_deletable,
    next_status,
)
from volunteer_tasks.services.ports import (
    ParticipationRepositoryProtocol,
    TaskRepositoryProtocol,
)

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """Owns task status changes; callers must hold the task row lock."""

    def __init__(
        self,
        *,
        task_repository: TaskRepositoryProtocol,
        participation_repository: ParticipationRepositoryProtocol,
        policy: CapacityStatusPolicy = CapacityStatusPolicy.AUTO,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._task_repository = task_repository
        self._participation_repository = participation_repository
        self._policy = policy
        self._clock = clock

    def occupancy(self, task: Task) -> Occupancy:
        return Occupancy(
            active_count=self._participation_repository.count_active(task.id),
            capacity=task.capacity,
        )

    def on_participation_changed(
        self,
        task: Task,
        trigger: LifecycleTrigger,
        occupancy: Occupancy,
    ) -> TaskStatus:
        """Recompute status from the count read in the triggering transaction."""

        target = next_status(
            task.status,
            trigger,
            occupancy=occupancy,
            policy=self._policy,
        )
        self._transition(task, target, trigger=trigger, occupancy=occupancy)
        return target

    def complete(self, task: Task) -> Task:
        occupancy = self.occupancy(task)
        target = next_status(
            task.status,
            LifecycleTrigger.COMPLETE,
            occupancy=occupancy,
            policy=self._policy,
        )
        self._transition(
            task,
            target,
            trigger=LifecycleTrigger.COMPLETE,
            occupancy=occupancy,
            completed_at=self._clock(),
        )
        return task

    def cancel(self, task: Task) -> int:
        """Cancel the task, closing its active participations.

        Returns how many participations were released.
        """

        occupancy = self.occupancy(task)
        target = next_status(
            task.status,
            LifecycleTrigger.CANCEL,
            occupancy=occupancy,
            policy=self._policy,
        )
        released = self._participation_repository.release_all_active(
            task_id=task.id,
            left_at=self._clock(),
        )
        self._transition(
            task,
            target,
            trigger=LifecycleTrigger.CANCEL,
            occupancy=Occupancy(active_count=0, capacity=task.capacity),
        )
        return released

    def delete(self, task: Task) -> None:
        active_count = self._participation_repository.count_active(task.id)
        ensure_deletable(task.status, active_count)
        self._task_repository.delete_task(task)

    def _transition(
        self,
        task: Task,
        target: TaskStatus,
        *,
        trigger: LifecycleTrigger,
        occupancy: Occupancy,
        completed_at: datetime | None = None,
    ) -> None:
        if target == task.status:
            return
        previous = task.status
        self._task_repository.set_status(
            task=task,
            status=target,
            completed_at=completed_at,
        )
        logger.info(
            "task_status_changed",
            extra={
                "task_id": str(task.id),
                "from_status": previous.value,
                "to_status": target.value,
                "trigger": trigger.value,
                "active_participants": occupancy.active_count,
                "capacity": occupancy.capacity,
            },
        )
