"""Task authoring service: create, read, complete, cancel and delete."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from volunteer_tasks.domain.clock import as_utc, utc_now
from volunteer_tasks.domain.errors import (
    InvalidRequestError,
    TaskDeletionBlockedError,
    TaskNotFoundError,
    UnauthorizedError,
    compose_error_message,
)
from volunteer_tasks.services.authorization import AuthorizationPolicy, Role
from volunteer_tasks.services.contention import (
    ContentionRetrier,
    claim_task,
    lock_task,
)
from volunteer_tasks.services.lifecycle_engine import LifecycleEngine
from volunteer_tasks.services.ports import (
    ParticipationRepositoryProtocol,
    SessionProtocol,
    TaskRepositoryProtocol,
)
from volunteer_tasks.services.views import TaskSnapshot

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000
LOCATION_MAX_LENGTH = 255


@dataclass(slots=True, frozen=True)
class CreateTaskInput:
    """Input model for task creation."""

    caller_id: str
    title: str
    description: str
    capacity: int
    location: str | None = None
    category_id: str | None = None
    scheduled_at: datetime | None = None


class TaskService:
    """Coordinates task authoring use cases."""

    def __init__(
        self,
        *,
        task_repository: TaskRepositoryProtocol,
        participation_repository: ParticipationRepositoryProtocol,
        lifecycle_engine: LifecycleEngine,
        authorization_policy: AuthorizationPolicy,
        session: SessionProtocol,
        retrier: ContentionRetrier,
        lock_timeout_ms: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._task_repository = task_repository
        self._participation_repository = participation_repository
        self._lifecycle_engine = lifecycle_engine
        self._authorization_policy = authorization_policy
        self._session = session
        self._retrier = retrier
        self._lock_timeout_ms = lock_timeout_ms
        self._clock = clock

    def create_task(self, payload: CreateTaskInput) -> TaskSnapshot:
        """Create one open task after business validation."""

        if not self._authorization_policy.has_role(payload.caller_id, Role.REQUESTER):
            raise UnauthorizedError(details={"required_role": Role.REQUESTER.value})

        title = payload.title.strip()
        if not title or len(title) > TITLE_MAX_LENGTH:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=(
                        f"title must have between 1 and {TITLE_MAX_LENGTH} characters."
                    ),
                    action="Send a non-blank title within the limit.",
                )
            )

        description = payload.description.strip()
        if not DESCRIPTION_MIN_LENGTH <= len(description) <= DESCRIPTION_MAX_LENGTH:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=(
                        f"description must have between {DESCRIPTION_MIN_LENGTH} "
                        f"and {DESCRIPTION_MAX_LENGTH} characters."
                    ),
                    action="Describe the help needed within the limits.",
                )
            )

        location = payload.location.strip() if payload.location else None
        if location is not None and len(location) > LOCATION_MAX_LENGTH:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=f"location exceeds {LOCATION_MAX_LENGTH} characters.",
                    action="Shorten the location text.",
                )
            )

        if payload.capacity < 1:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="capacity must be at least 1.",
                    action="Send a positive participant capacity.",
                ),
                details={"capacity": payload.capacity},
            )

        scheduled_at = (
            as_utc(payload.scheduled_at) if payload.scheduled_at is not None else None
        )
        if scheduled_at is not None and scheduled_at <= self._clock():
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="scheduled_at must be in the future.",
                    action="Pick a future date and time for the task.",
                ),
                details={"scheduled_at": scheduled_at.isoformat()},
            )

        try:
            task = self._task_repository.add_task(
                title=title,
                description=description,
                location=location or None,
                category_id=payload.category_id,
                creator_id=payload.caller_id,
                capacity=payload.capacity,
                scheduled_at=scheduled_at,
            )
            self._session.commit()
            self._session.refresh(task)
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "task_created",
            extra={
                "task_id": str(task.id),
                "creator_id": task.creator_id,
                "capacity": task.capacity,
            },
        )
        return TaskSnapshot.from_task(task, 0)

    def get_task(self, task_id: UUID) -> TaskSnapshot:
        task = self._task_repository.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(details={"task_id": str(task_id)})
        return TaskSnapshot.from_task(
            task,
            self._participation_repository.count_active(task.id),
        )

    def complete_task(self, task_id: UUID, caller_id: str) -> TaskSnapshot:
        """Mark the task completed; only its creator may do so."""

        self._require_task(task_id)
        if not self._authorization_policy.is_owner(caller_id, task_id):
            raise UnauthorizedError(
                message=compose_error_message(
                    cause="Only the task creator can complete a task.",
                    action="Ask the task creator to complete it.",
                ),
                details={"task_id": str(task_id)},
            )
        return self._retrier.run(lambda: self._complete_once(task_id), task_id=task_id)

    def cancel_task(self, task_id: UUID, caller_id: str) -> TaskSnapshot:
        """Cancel the task; allowed for its creator and administrators."""

        self._require_task(task_id)
        self._ensure_owner_or_admin(caller_id, task_id, action="cancel")
        return self._retrier.run(lambda: self._cancel_once(task_id), task_id=task_id)

    def delete_task(self, task_id: UUID, caller_id: str) -> None:
        """Delete a task that has no work in progress and no active volunteers."""

        self._require_task(task_id)
        self._ensure_owner_or_admin(caller_id, task_id, action="delete")
        self._retrier.run(lambda: self._delete_once(task_id), task_id=task_id)

    def _complete_once(self, task_id: UUID) -> TaskSnapshot:
        task = lock_task(
            self._task_repository, task_id, lock_timeout_ms=self._lock_timeout_ms
        )
        observed_version = task.version
        previous_status = task.status
        claim_task(self._task_repository, task, observed_version=observed_version)
        self._lifecycle_engine.complete(task)
        active_count = self._participation_repository.count_active(task.id)
        self._session.commit()
        logger.info(
            "task_completed",
            extra={
                "task_id": str(task.id),
                "from_status": previous_status.value,
                "active_participants": active_count,
            },
        )
        return TaskSnapshot.from_task(task, active_count)

    def _cancel_once(self, task_id: UUID) -> TaskSnapshot:
        task = lock_task(
            self._task_repository, task_id, lock_timeout_ms=self._lock_timeout_ms
        )
        observed_version = task.version
        previous_status = task.status
        claim_task(self._task_repository, task, observed_version=observed_version)
        released = self._lifecycle_engine.cancel(task)
        self._session.commit()
        logger.info(
            "task_cancelled",
            extra={
                "task_id": str(task.id),
                "from_status": previous_status.value,
                "released_participations": released,
            },
        )
        return TaskSnapshot.from_task(task, 0)

    def _delete_once(self, task_id: UUID) -> None:
        task = lock_task(
            self._task_repository, task_id, lock_timeout_ms=self._lock_timeout_ms
        )
        claim_task(self._task_repository, task, observed_version=task.version)
        try:
            self._lifecycle_engine.delete(task)
        except TaskDeletionBlockedError as exc:
            logger.info(
                "task_deletion_blocked",
                extra={"task_id": str(task_id), **exc.details},
            )
            raise
        self._session.commit()
        logger.info("task_deleted", extra={"task_id": str(task_id)})

    def _ensure_owner_or_admin(
        self, caller_id: str, task_id: UUID, *, action: str
    ) -> None:
        if self._authorization_policy.is_owner(caller_id, task_id):
            return
        if self._authorization_policy.has_role(caller_id, Role.ADMIN):
            return
        raise UnauthorizedError(
            message=compose_error_message(
                cause=f"Only the task creator or an administrator can {action} a task.",
                action="Use the creator account or an administrator account.",
            ),
            details={"task_id": str(task_id)},
        )

    def _require_task(self, task_id: UUID) -> None:
        if self._task_repository.get_task(task_id) is None:
            raise TaskNotFoundError(details={"task_id": str(task_id)})
