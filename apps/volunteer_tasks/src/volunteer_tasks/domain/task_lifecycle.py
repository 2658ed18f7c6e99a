"""Task status state machine.

Every status change goes through ``next_status``, which looks the
``(current status, trigger)`` pair up in ``TRANSITIONS``. Pairs missing from
the table are rejected, which is how terminal states stay terminal.

Participation-driven transitions are resolved from an ``Occupancy`` that the
caller must read inside the same transaction as the join or leave that
triggered it.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from volunteer_tasks.db.models.task import TaskStatus
from volunteer_tasks.domain.errors import (
    InvalidTaskStateTransitionError,
    TaskDeletionBlockedError,
)


class LifecycleTrigger(enum.StrEnum):
    """Events that may move a task between statuses."""

    JOIN_ADMITTED = "join_admitted"
    LEAVE_RELEASED = "leave_released"
    COMPLETE = "complete"
    CANCEL = "cancel"


class CapacityStatusPolicy(enum.StrEnum):
    """How reaching or freeing capacity affects task status."""

    AUTO = "auto"
    MANUAL = "manual"


@dataclass(slots=True, frozen=True)
class Occupancy:
    """Active participant count against declared capacity."""

    active_count: int
    capacity: int

    @property
    def is_full(self) -> bool:
        return self.active_count >= self.capacity

    @property
    def available_slots(self) -> int:
        return max(self.capacity - self.active_count, 0)


StatusResolver = Callable[[TaskStatus, Occupancy, CapacityStatusPolicy], TaskStatus]


def _by_occupancy(
    current: TaskStatus,
    occupancy: Occupancy,
    policy: CapacityStatusPolicy,
) -> TaskStatus:
    if policy is CapacityStatusPolicy.MANUAL:
        return current
    return TaskStatus.IN_PROGRESS if occupancy.is_full else TaskStatus.OPEN


def _always(target: TaskStatus) -> StatusResolver:
    def resolve(
        current: TaskStatus,
        occupancy: Occupancy,
        policy: CapacityStatusPolicy,
    ) -> TaskStatus:
        return target

    return resolve


TRANSITIONS: dict[tuple[TaskStatus, LifecycleTrigger], StatusResolver] = {
    (TaskStatus.OPEN, LifecycleTrigger.JOIN_ADMITTED): _by_occupancy,
    (TaskStatus.IN_PROGRESS, LifecycleTrigger.JOIN_ADMITTED): _by_occupancy,
    (TaskStatus.OPEN, LifecycleTrigger.LEAVE_RELEASED): _by_occupancy,
    (TaskStatus.IN_PROGRESS, LifecycleTrigger.LEAVE_RELEASED): _by_occupancy,
    (TaskStatus.OPEN, LifecycleTrigger.COMPLETE): _always(TaskStatus.COMPLETED),
    (TaskStatus.IN_PROGRESS, LifecycleTrigger.COMPLETE): _always(
        TaskStatus.COMPLETED
    ),
    (TaskStatus.OPEN, LifecycleTrigger.CANCEL): _always(TaskStatus.CANCELLED),
    (TaskStatus.IN_PROGRESS, LifecycleTrigger.CANCEL): _always(TaskStatus.CANCELLED),
}


def next_status(
    current: TaskStatus,
    trigger: LifecycleTrigger,
    *,
    occupancy: Occupancy,
    policy: CapacityStatusPolicy = CapacityStatusPolicy.AUTO,
) -> TaskStatus:
    """Resolve the status a task moves to when ``trigger`` fires."""

    resolver = TRANSITIONS.get((current, trigger))
    if resolver is None:
        raise InvalidTaskStateTransitionError(
            details={"from_status": current.value, "trigger": trigger.value}
        )
    return resolver(current, occupancy, policy)


def is_deletable(status: TaskStatus, active_count: int) -> bool:
    """Return whether a task may be physically deleted."""

    return status != TaskStatus.IN_PROGRESS and active_count == 0


def ensure_deletable(status: TaskStatus, active_count: int) -> None:
    """Raise when deleting would drop in-progress work or active volunteers."""

    if not is_deletable(status, active_count):
        raise TaskDeletionBlockedError(
            details={"status": status.value, "active_participants": active_count}
        )
