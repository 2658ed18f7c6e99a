"""Read views returned by task and participation services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus
from volunteer_tasks.domain.clock import as_utc


def _optional_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """Task state together with its authoritative active participant count."""

    id: UUID
    title: str
    description: str
    location: str | None
    category_id: str | None
    creator_id: str
    capacity: int
    active_participants: int
    status: TaskStatus
    scheduled_at: datetime | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None

    @property
    def available_slots(self) -> int:
        return max(self.capacity - self.active_participants, 0)

    @classmethod
    def from_task(cls, task: Task, active_participants: int) -> TaskSnapshot:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            location=task.location,
            category_id=task.category_id,
            creator_id=task.creator_id,
            capacity=task.capacity,
            active_participants=active_participants,
            status=task.status,
            scheduled_at=_optional_utc(task.scheduled_at),
            created_at=as_utc(task.created_at),
            updated_at=as_utc(task.updated_at),
            completed_at=_optional_utc(task.completed_at),
        )


@dataclass(slots=True, frozen=True)
class ParticipantView:
    """Active volunteer of a task."""

    volunteer_id: str
    joined_at: datetime
    note: str | None

    @classmethod
    def from_participation(cls, participation: Participation) -> ParticipantView:
        return cls(
            volunteer_id=participation.volunteer_id,
            joined_at=as_utc(participation.joined_at),
            note=participation.note,
        )


@dataclass(slots=True, frozen=True)
class ParticipationHistoryItem:
    """One participation row of a volunteer, active or historical."""

    participation_id: UUID
    task_id: UUID
    task_title: str
    task_status: TaskStatus
    active: bool
    note: str | None
    joined_at: datetime
    left_at: datetime | None

    @classmethod
    def from_rows(
        cls,
        participation: Participation,
        task: Task,
    ) -> ParticipationHistoryItem:
        return cls(
            participation_id=participation.id,
            task_id=task.id,
            task_title=task.title,
            task_status=task.status,
            active=participation.active,
            note=participation.note,
            joined_at=as_utc(participation.joined_at),
            left_at=_optional_utc(participation.left_at),
        )


@dataclass(slots=True, frozen=True)
class VolunteerStatistics:
    """Participation counters of one caller, as volunteer and as author."""

    volunteer_id: str
    active_participations: int
    total_participations: int
    completed_participations: int
    created_tasks: int
    completed_tasks: int
    cancelled_tasks: int
    volunteers_helped: int
