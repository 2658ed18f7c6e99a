"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_REQUEST",
            message=message
            or compose_error_message(
                cause="Request data violates business rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class TaskNotFoundError(DomainError):
    """Raised when the referenced task does not exist."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="TASK_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Task was not found.",
                action="Check the task id and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class UnauthorizedError(DomainError):
    """Raised when caller lacks the required role or ownership."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message
            or compose_error_message(
                cause="Caller is not allowed to perform this operation.",
                action="Use an account with the required role or ownership.",
            ),
            status_code=HTTPStatus.FORBIDDEN,
            details=details or {},
        )


class AlreadyActiveError(DomainError):
    """Raised when the volunteer already holds an active participation."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="ALREADY_ACTIVE",
            message=message
            or compose_error_message(
                cause="Volunteer is already participating in this task.",
                action="No action needed; leave the task before joining again.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class IsCreatorError(DomainError):
    """Raised when the task creator tries to join their own task."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="IS_CREATOR",
            message=message
            or compose_error_message(
                cause="Task creators cannot volunteer on their own task.",
                action="Join a task created by someone else.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class TaskNotJoinableError(DomainError):
    """Raised when the task is completed or cancelled."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="TASK_NOT_JOINABLE",
            message=message
            or compose_error_message(
                cause="Task is no longer accepting volunteers.",
                action="Choose an open task.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class TaskExpiredError(DomainError):
    """Raised when the task schedule is already in the past."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="TASK_EXPIRED",
            message=message
            or compose_error_message(
                cause="Task scheduled time has already passed.",
                action="Choose a task scheduled in the future.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class CapacityExceededError(DomainError):
    """Raised when every participant slot of the task is taken."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CAPACITY_EXCEEDED",
            message=message
            or compose_error_message(
                cause="Task has reached its participant capacity.",
                action="Try again after a volunteer leaves or pick another task.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class NotParticipatingError(DomainError):
    """Raised when leaving without an active participation."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="NOT_PARTICIPATING",
            message=message
            or compose_error_message(
                cause="Volunteer is not participating in this task.",
                action="Join the task first.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class TaskClosedError(DomainError):
    """Raised when leaving a task whose participant set is frozen."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="TASK_CLOSED",
            message=message
            or compose_error_message(
                cause="Task is completed and its participants are final.",
                action="No action is possible on a completed task.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class InvalidTaskStateTransitionError(DomainError):
    """Raised when a lifecycle transition is not allowed from current status."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_TASK_STATE_TRANSITION",
            message=message
            or compose_error_message(
                cause="Task status does not allow this transition.",
                action="Reload the task and check its current status.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class TaskDeletionBlockedError(DomainError):
    """Raised when a task still has work or volunteers attached."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="TASK_DELETION_BLOCKED",
            message=message
            or compose_error_message(
                cause="Task is in progress or still has active participants.",
                action="Wait until every volunteer has left, then retry.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class AdmissionContentionError(DomainError):
    """Raised when concurrent writers kept the task locked for every attempt."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="ADMISSION_CONTENTION",
            message=message
            or compose_error_message(
                cause="Task is busy with concurrent updates.",
                action="Retry the request shortly.",
            ),
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            details={"retryable": True, **(details or {})},
        )
