"""API dependency providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from volunteer_tasks.api.authorization import RequestAuthorizationPolicy
from volunteer_tasks.core.settings import Settings, get_settings
from volunteer_tasks.db.session import get_db_session
from volunteer_tasks.domain.errors import (
    InvalidRequestError,
    UnauthorizedError,
    compose_error_message,
)
from volunteer_tasks.domain.task_lifecycle import CapacityStatusPolicy
from volunteer_tasks.repositories.participation_repository import (
    ParticipationRepository,
)
from volunteer_tasks.repositories.task_repository import TaskRepository
from volunteer_tasks.services.authorization import Role
from volunteer_tasks.services.capacity_guard import CapacityGuard
from volunteer_tasks.services.contention import ContentionRetrier
from volunteer_tasks.services.lifecycle_engine import LifecycleEngine
from volunteer_tasks.services.participation_service import ParticipationService
from volunteer_tasks.services.task_service import TaskService


@dataclass(slots=True, frozen=True)
class Caller:
    """Identity asserted by the upstream gateway for one request."""

    caller_id: str
    roles: frozenset[Role]


def parse_roles(raw_roles: str | None) -> frozenset[Role]:
    """Parse a comma separated role header, ignoring blank entries."""

    if not raw_roles:
        return frozenset()
    roles: set[Role] = set()
    for item in raw_roles.split(","):
        value = item.strip().lower()
        if not value:
            continue
        try:
            roles.add(Role(value))
        except ValueError as exc:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=f"Unknown caller role '{value}'.",
                    action="Use only volunteer, requester or admin in X-Caller-Roles.",
                ),
                details={"role": value},
            ) from exc
    return frozenset(roles)


def get_caller(
    caller_id: Annotated[str | None, Header(alias="X-Caller-Id")] = None,
    caller_roles: Annotated[str | None, Header(alias="X-Caller-Roles")] = None,
) -> Caller:
    """Read caller identity headers; a missing caller id is rejected."""

    normalized_id = (caller_id or "").strip()
    if not normalized_id:
        raise UnauthorizedError(
            message=compose_error_message(
                cause="X-Caller-Id header is missing.",
                action="Send the authenticated caller id in X-Caller-Id.",
            )
        )
    return Caller(caller_id=normalized_id, roles=parse_roles(caller_roles))


def _build_lifecycle_engine(session: Session, settings: Settings) -> LifecycleEngine:
    return LifecycleEngine(
        task_repository=TaskRepository(session),
        participation_repository=ParticipationRepository(session),
        policy=CapacityStatusPolicy(settings.capacity_status_policy),
    )


def get_task_service(
    session: Annotated[Session, Depends(get_db_session)],
    caller: Annotated[Caller, Depends(get_caller)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TaskService:
    """Build task service with per-request session and caller policy."""

    task_repository = TaskRepository(session)
    return TaskService(
        task_repository=task_repository,
        participation_repository=ParticipationRepository(session),
        lifecycle_engine=_build_lifecycle_engine(session, settings),
        authorization_policy=RequestAuthorizationPolicy(
            caller_id=caller.caller_id,
            roles=caller.roles,
            task_repository=task_repository,
        ),
        session=session,
        retrier=ContentionRetrier(
            session=session,
            max_attempts=settings.admission_max_attempts,
        ),
        lock_timeout_ms=settings.admission_lock_timeout_ms,
    )


def get_participation_service(
    session: Annotated[Session, Depends(get_db_session)],
    caller: Annotated[Caller, Depends(get_caller)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ParticipationService:
    """Build participation service with per-request session and caller policy."""

    task_repository = TaskRepository(session)
    participation_repository = ParticipationRepository(session)
    return ParticipationService(
        capacity_guard=CapacityGuard(
            task_repository=task_repository,
            participation_repository=participation_repository,
            lock_timeout_ms=settings.admission_lock_timeout_ms,
        ),
        lifecycle_engine=_build_lifecycle_engine(session, settings),
        task_repository=task_repository,
        participation_repository=participation_repository,
        authorization_policy=RequestAuthorizationPolicy(
            caller_id=caller.caller_id,
            roles=caller.roles,
            task_repository=task_repository,
        ),
        session=session,
        retrier=ContentionRetrier(
            session=session,
            max_attempts=settings.admission_max_attempts,
        ),
    )
