"""Per-task exclusive sections with bounded retries on write contention."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy.exc import DBAPIError, IntegrityError

from volunteer_tasks.db.contention import is_active_pair_conflict, is_lock_contention
from volunteer_tasks.db.models.task import Task
from volunteer_tasks.domain.errors import AdmissionContentionError, TaskNotFoundError
from volunteer_tasks.services.ports import SessionProtocol, TaskRepositoryProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskVersionConflict(Exception):
    """Raised when another writer changed the task after it was read."""

    def __init__(self, task_id: UUID) -> None:
        super().__init__(f"Task {task_id} was modified concurrently.")
        self.task_id = task_id


def lock_task(
    task_repository: TaskRepositoryProtocol,
    task_id: UUID,
    *,
    lock_timeout_ms: int | None = None,
) -> Task:
    """Load a task holding its row lock for the rest of the transaction."""

    if lock_timeout_ms is not None:
        task_repository.set_lock_timeout(lock_timeout_ms)
    task = task_repository.get_task_for_update(task_id)
    if task is None:
        raise TaskNotFoundError(details={"task_id": str(task_id)})
    return task


def claim_task(
    task_repository: TaskRepositoryProtocol,
    task: Task,
    *,
    observed_version: int,
) -> None:
    """Advance the task version or fail if another writer got there first."""

    claimed = task_repository.compare_and_bump_version(
        task_id=task.id,
        expected_version=observed_version,
    )
    if not claimed:
        raise TaskVersionConflict(task.id)


class ContentionRetrier:
    """Runs one task mutation, retrying only on transient write contention.

    The operation must commit on success. Any failure rolls the session back,
    so nothing from a failed attempt survives. Business errors propagate
    immediately; contention is retried up to ``max_attempts`` times and then
    surfaced as a retryable ``AdmissionContentionError``.
    """

    def __init__(self, *, session: SessionProtocol, max_attempts: int) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session = session
        self._max_attempts = max_attempts

    def run(self, operation: Callable[[], T], *, task_id: UUID) -> T:
        for attempt in range(1, self._max_attempts + 1):
            try:
                return operation()
            except TaskVersionConflict:
                self._session.rollback()
                reason = "version_conflict"
            except IntegrityError as exc:
                self._session.rollback()
                if not is_active_pair_conflict(exc):
                    raise
                reason = "active_pair_conflict"
            except DBAPIError as exc:
                self._session.rollback()
                if not is_lock_contention(exc):
                    raise
                reason = "lock_contention"
            except Exception:
                self._session.rollback()
                raise

            logger.warning(
                "admission_contention",
                extra={
                    "task_id": str(task_id),
                    "attempt": attempt,
                    "max_attempts": self._max_attempts,
                    "reason": reason,
                },
            )

        logger.warning(
            "admission_contention_exhausted",
            extra={"task_id": str(task_id), "attempts": self._max_attempts},
        )
        raise AdmissionContentionError(
            details={"task_id": str(task_id), "attempts": self._max_attempts}
        )
