"""Task participation routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path

from volunteer_tasks.api.dependencies import (
    Caller,
    get_caller,
    get_participation_service,
)
from volunteer_tasks.api.schemas.participations import (
    JoinTaskRequest,
    ParticipantListResponse,
    ParticipationStatusResponse,
)
from volunteer_tasks.api.schemas.tasks import TaskResponse
from volunteer_tasks.services.participation_service import (
    JoinTaskInput,
    ParticipationService,
)

router = APIRouter(prefix="/tasks/{task_id}", tags=["Participations"])


@router.post(
    "/participations",
    response_model=TaskResponse,
    responses={
        403: {"description": "Caller is not a volunteer"},
        404: {"description": "Task not found"},
        409: {"description": "Join rejected by a business rule"},
        503: {"description": "Task busy with concurrent updates"},
    },
)
def join_task(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
    payload: Annotated[JoinTaskRequest | None, Body()] = None,
) -> TaskResponse:
    """Join a task as volunteer when a slot is available."""

    snapshot = service.join(
        JoinTaskInput(
            task_id=task_id,
            caller_id=caller.caller_id,
            note=payload.note if payload is not None else None,
        )
    )
    return TaskResponse.from_snapshot(snapshot)


@router.delete(
    "/participations/me",
    response_model=TaskResponse,
    responses={
        404: {"description": "Task not found"},
        409: {"description": "Caller is not participating or task is closed"},
        503: {"description": "Task busy with concurrent updates"},
    },
)
def leave_task(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
) -> TaskResponse:
    """Leave a task, freeing the caller's slot."""

    return TaskResponse.from_snapshot(service.leave(task_id, caller.caller_id))


@router.get(
    "/participations/me",
    response_model=ParticipationStatusResponse,
    responses={404: {"description": "Task not found"}},
)
def get_participation_status(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
) -> ParticipationStatusResponse:
    return ParticipationStatusResponse(
        task_id=task_id,
        volunteer_id=caller.caller_id,
        participating=service.is_participating(task_id, caller.caller_id),
    )


@router.get(
    "/participants",
    response_model=ParticipantListResponse,
    responses={404: {"description": "Task not found"}},
)
def list_participants(
    task_id: Annotated[UUID, Path()],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
) -> ParticipantListResponse:
    """List active volunteers of a task."""

    return ParticipantListResponse.from_views(
        task_id=task_id,
        views=service.list_participants(task_id),
    )
