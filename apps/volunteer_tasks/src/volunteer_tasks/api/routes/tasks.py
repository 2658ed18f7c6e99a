"""Task routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status

from volunteer_tasks.api.dependencies import Caller, get_caller, get_task_service
from volunteer_tasks.api.schemas.tasks import CreateTaskRequest, TaskResponse
from volunteer_tasks.services.task_service import CreateTaskInput, TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
        403: {"description": "Caller is not a requester"},
    },
)
def create_task(
    payload: CreateTaskRequest,
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[TaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Create one open task owned by the caller."""

    snapshot = service.create_task(
        CreateTaskInput(
            caller_id=caller.caller_id,
            title=payload.title,
            description=payload.description,
            capacity=payload.capacity,
            location=payload.location,
            category_id=payload.category_id,
            scheduled_at=payload.scheduled_at,
        )
    )
    return TaskResponse.from_snapshot(snapshot)


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    responses={404: {"description": "Task not found"}},
)
def get_task(
    task_id: Annotated[UUID, Path()],
    service: Annotated[TaskService, Depends(get_task_service)],
) -> TaskResponse:
    return TaskResponse.from_snapshot(service.get_task(task_id))


@router.post(
    "/{task_id}/complete",
    response_model=TaskResponse,
    responses={
        403: {"description": "Caller is not the task creator"},
        404: {"description": "Task not found"},
        409: {"description": "Task cannot be completed from its status"},
    },
)
def complete_task(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[TaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Mark a task as completed."""

    return TaskResponse.from_snapshot(service.complete_task(task_id, caller.caller_id))


@router.post(
    "/{task_id}/cancel",
    response_model=TaskResponse,
    responses={
        403: {"description": "Caller is neither creator nor admin"},
        404: {"description": "Task not found"},
        409: {"description": "Task cannot be cancelled from its status"},
    },
)
def cancel_task(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[TaskService, Depends(get_task_service)],
) -> TaskResponse:
    """Cancel a task and release its active participations."""

    return TaskResponse.from_snapshot(service.cancel_task(task_id, caller.caller_id))


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        403: {"description": "Caller is neither creator nor admin"},
        404: {"description": "Task not found"},
        409: {"description": "Task is in progress or has active volunteers"},
    },
)
def delete_task(
    task_id: Annotated[UUID, Path()],
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[TaskService, Depends(get_task_service)],
) -> Response:
    """Delete a task without work in progress."""

    service.delete_task(task_id, caller.caller_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
