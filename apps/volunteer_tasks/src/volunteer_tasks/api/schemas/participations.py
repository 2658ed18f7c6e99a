"""Participation API schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from volunteer_tasks.api.schemas.tasks import TaskStatusValue
from volunteer_tasks.services.views import (
    ParticipantView,
    ParticipationHistoryItem,
    VolunteerStatistics,
)


class JoinTaskRequest(BaseModel):
    """Optional payload sent when joining a task."""

    note: str | None = Field(default=None, max_length=500)


class ParticipationStatusResponse(BaseModel):
    """Whether the caller currently participates in a task."""

    task_id: UUID
    volunteer_id: str
    participating: bool


class ParticipantResponse(BaseModel):
    """Active volunteer of a task."""

    volunteer_id: str
    joined_at: datetime
    note: str | None = None

    @classmethod
    def from_view(cls, view: ParticipantView) -> ParticipantResponse:
        return cls(
            volunteer_id=view.volunteer_id,
            joined_at=view.joined_at,
            note=view.note,
        )


class ParticipantListResponse(BaseModel):
    """Active volunteers of a task, oldest join first."""

    task_id: UUID
    items: list[ParticipantResponse]
    total: int = Field(ge=0)

    @classmethod
    def from_views(
        cls,
        *,
        task_id: UUID,
        views: list[ParticipantView],
    ) -> ParticipantListResponse:
        return cls(
            task_id=task_id,
            items=[ParticipantResponse.from_view(view) for view in views],
            total=len(views),
        )


class ParticipationHistoryItemResponse(BaseModel):
    """One participation of the caller, active or historical."""

    participation_id: UUID
    task_id: UUID
    task_title: str
    task_status: TaskStatusValue
    active: bool
    note: str | None = None
    joined_at: datetime
    left_at: datetime | None = None

    @classmethod
    def from_item(
        cls,
        item: ParticipationHistoryItem,
    ) -> ParticipationHistoryItemResponse:
        return cls(
            participation_id=item.participation_id,
            task_id=item.task_id,
            task_title=item.task_title,
            task_status=item.task_status.value,
            active=item.active,
            note=item.note,
            joined_at=item.joined_at,
            left_at=item.left_at,
        )


class ParticipationHistoryResponse(BaseModel):
    """Participation history of the caller, newest first."""

    volunteer_id: str
    items: list[ParticipationHistoryItemResponse]
    total: int = Field(ge=0)


class VolunteerStatisticsResponse(BaseModel):
    """Participation and authoring counters of the caller."""

    volunteer_id: str
    active_participations: int = Field(ge=0)
    total_participations: int = Field(ge=0)
    completed_participations: int = Field(ge=0)
    created_tasks: int = Field(ge=0)
    completed_tasks: int = Field(ge=0)
    cancelled_tasks: int = Field(ge=0)
    volunteers_helped: int = Field(ge=0)

    @classmethod
    def from_statistics(
        cls,
        statistics: VolunteerStatistics,
    ) -> VolunteerStatisticsResponse:
        return cls(
            volunteer_id=statistics.volunteer_id,
            active_participations=statistics.active_participations,
            total_participations=statistics.total_participations,
            completed_participations=statistics.completed_participations,
            created_tasks=statistics.created_tasks,
            completed_tasks=statistics.completed_tasks,
            cancelled_tasks=statistics.cancelled_tasks,
            volunteers_helped=statistics.volunteers_helped,
        )
