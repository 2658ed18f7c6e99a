"""Pydantic schemas for HTTP payloads."""

from volunteer_tasks.api.schemas.participations import (
    JoinTaskRequest,
    ParticipantListResponse,
    ParticipationHistoryResponse,
    ParticipationStatusResponse,
    VolunteerStatisticsResponse,
)
from volunteer_tasks.api.schemas.tasks import CreateTaskRequest, TaskResponse

__all__ = [
    "CreateTaskRequest",
    "JoinTaskRequest",
    "ParticipantListResponse",
    "ParticipationHistoryResponse",
    "ParticipationStatusResponse",
    "TaskResponse",
    "VolunteerStatisticsResponse",
]
