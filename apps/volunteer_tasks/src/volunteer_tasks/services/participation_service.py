"""Join, leave and query volunteer participation in tasks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from volunteer_tasks.domain.errors import (
    AlreadyActiveError,
    CapacityExceededError,
    DomainError,
    InvalidRequestError,
    IsCreatorError,
    NotParticipatingError,
    TaskClosedError,
    TaskExpiredError,
    TaskNotFoundError,
    TaskNotJoinableError,
    UnauthorizedError,
    compose_error_message,
)
from volunteer_tasks.domain.task_lifecycle import LifecycleTrigger
from volunteer_tasks.services.authorization import AuthorizationPolicy, Role
from volunteer_tasks.services.capacity_guard import (
    AdmissionRejection,
    CapacityGuard,
    Rejected,
)
from volunteer_tasks.services.contention import ContentionRetrier
from volunteer_tasks.services.lifecycle_engine import LifecycleEngine
from volunteer_tasks.services.ports import (
    ParticipationRepositoryProtocol,
    SessionProtocol,
    TaskRepositoryProtocol,
)
from volunteer_tasks.services.views import (
    ParticipantView,
    ParticipationHistoryItem,
    TaskSnapshot,
    VolunteerStatistics,
)

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 500

REJECTION_ERRORS: dict[AdmissionRejection, Callable[..., DomainError]] = {
    AdmissionRejection.ALREADY_ACTIVE: AlreadyActiveError,
    AdmissionRejection.IS_CREATOR: IsCreatorError,
    AdmissionRejection.TASK_NOT_JOINABLE: TaskNotJoinableError,
    AdmissionRejection.TASK_EXPIRED: TaskExpiredError,
    AdmissionRejection.CAPACITY_EXCEEDED: CapacityExceededError,
    AdmissionRejection.NOT_ACTIVE: NotParticipatingError,
    AdmissionRejection.TASK_CLOSED: TaskClosedError,
}


def rejection_error(rejected: Rejected, *, volunteer_id: str) -> DomainError:
    """Translate a guard rejection into its caller-visible domain error."""

    details: dict[str, object] = {
        "task_id": str(rejected.task.id),
        "volunteer_id": volunteer_id,
        "task_status": rejected.task.status.value,
    }
    if rejected.active_count is not None:
        details["active_participants"] = rejected.active_count
        details["capacity"] = rejected.task.capacity
    return REJECTION_ERRORS[rejected.reason](details=details)


@dataclass(slots=True, frozen=True)
class JoinTaskInput:
    """Input model for joining a task."""

    task_id: UUID
    caller_id: str
    note: str | None = None


class ParticipationService:
    """Coordinates capacity-bounded joins and leaves."""

    def __init__(
        self,
        *,
        capacity_guard: CapacityGuard,
        lifecycle_engine: LifecycleEngine,
        task_repository: TaskRepositoryProtocol,
        participation_repository: ParticipationRepositoryProtocol,
        authorization_policy: AuthorizationPolicy,
        session: SessionProtocol,
        retrier: ContentionRetrier,
    ) -> None:
        self._capacity_guard = capacity_guard
        self._lifecycle_engine = lifecycle_engine
        self._task_repository = task_repository
        self._participation_repository = participation_repository
        self._authorization_policy = authorization_policy
        self._session = session
        self._retrier = retrier

    def join(self, payload: JoinTaskInput) -> TaskSnapshot:
        """Admit the caller as volunteer and return the updated task."""

        if not self._authorization_policy.has_role(payload.caller_id, Role.VOLUNTEER):
            raise UnauthorizedError(
                details={"required_role": Role.VOLUNTEER.value},
            )
        note = (payload.note or "").strip() or None
        if note is not None and len(note) > NOTE_MAX_LENGTH:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=f"note exceeds {NOTE_MAX_LENGTH} characters.",
                    action="Shorten the participation note.",
                ),
                details={"note_length": len(note)},
            )
        self._require_task(payload.task_id)
        return self._retrier.run(
            lambda: self._join_once(payload.task_id, payload.caller_id, note),
            task_id=payload.task_id,
        )

    def leave(self, task_id: UUID, caller_id: str) -> TaskSnapshot:
        """Close the caller's active participation and return the updated task."""

        self._require_task(task_id)
        return self._retrier.run(
            lambda: self._leave_once(task_id, caller_id),
            task_id=task_id,
        )

    def is_participating(self, task_id: UUID, caller_id: str) -> bool:
        self._require_task(task_id)
        active = self._participation_repository.find_active(task_id, caller_id)
        return active is not None

    def list_participants(self, task_id: UUID) -> list[ParticipantView]:
        """List active volunteers of a task by join time, oldest first."""

        self._require_task(task_id)
        return [
            ParticipantView.from_participation(participation)
            for participation in self._participation_repository.list_active_for_task(
                task_id
            )
        ]

    def participation_history(
        self, volunteer_id: str
    ) -> list[ParticipationHistoryItem]:
        """List every participation of a volunteer, newest first."""

        return [
            ParticipationHistoryItem.from_rows(participation, task)
            for participation, task in self._participation_repository.list_by_volunteer(
                volunteer_id
            )
        ]

    def volunteer_statistics(self, volunteer_id: str) -> VolunteerStatistics:
        """Count the caller's participations and the tasks they authored."""

        participations = self._participation_repository
        active, total = participations.count_by_volunteer(volunteer_id)
        created, completed, cancelled = self._task_repository.count_by_creator(
            volunteer_id
        )
        return VolunteerStatistics(
            volunteer_id=volunteer_id,
            active_participations=active,
            total_participations=total,
            completed_participations=participations.count_completed_for_volunteer(
                volunteer_id
            ),
            created_tasks=created,
            completed_tasks=completed,
            cancelled_tasks=cancelled,
            volunteers_helped=participations.count_volunteers_helped(volunteer_id),
        )

    def _join_once(
        self,
        task_id: UUID,
        volunteer_id: str,
        note: str | None,
    ) -> TaskSnapshot:
        result = self._capacity_guard.try_admit(task_id, volunteer_id, note=note)
        if isinstance(result, Rejected):
            logger.info(
                "participation_rejected",
                extra={
                    "task_id": str(task_id),
                    "volunteer_id": volunteer_id,
                    "reason": result.reason.value,
                },
            )
            raise rejection_error(result, volunteer_id=volunteer_id)

        self._lifecycle_engine.on_participation_changed(
            result.task,
            LifecycleTrigger.JOIN_ADMITTED,
            result.occupancy,
        )
        self._session.commit()
        logger.info(
            "participation_admitted",
            extra={
                "task_id": str(task_id),
                "volunteer_id": volunteer_id,
                "participation_id": str(result.participation.id),
                "active_participants": result.occupancy.active_count,
                "capacity": result.occupancy.capacity,
            },
        )
        return TaskSnapshot.from_task(result.task, result.occupancy.active_count)

    def _leave_once(self, task_id: UUID, volunteer_id: str) -> TaskSnapshot:
        result = self._capacity_guard.release(task_id, volunteer_id)
        if isinstance(result, Rejected):
            logger.info(
                "participation_rejected",
                extra={
                    "task_id": str(task_id),
                    "volunteer_id": volunteer_id,
                    "reason": result.reason.value,
                },
            )
            raise rejection_error(result, volunteer_id=volunteer_id)

        self._lifecycle_engine.on_participation_changed(
            result.task,
            LifecycleTrigger.LEAVE_RELEASED,
            result.occupancy,
        )
        self._session.commit()
        logger.info(
            "participation_released",
            extra={
                "task_id": str(task_id),
                "volunteer_id": volunteer_id,
                "participation_id": str(result.participation.id),
                "active_participants": result.occupancy.active_count,
            },
        )
        return TaskSnapshot.from_task(result.task, result.occupancy.active_count)

    def _require_task(self, task_id: UUID) -> None:
        if self._task_repository.get_task(task_id) is None:
            raise TaskNotFoundError(details={"task_id": str(task_id)})
