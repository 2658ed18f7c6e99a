"""Task API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from volunteer_tasks.services.views import TaskSnapshot

TaskStatusValue = Literal["open", "in_progress", "completed", "cancelled"]


class CreateTaskRequest(BaseModel):
    """Payload for task creation."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    location: str | None = Field(default=None, max_length=255)
    category_id: str | None = Field(default=None, min_length=1, max_length=64)
    capacity: int = Field(ge=1)
    scheduled_at: datetime | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Title cannot be blank.")
        return trimmed


class TaskResponse(BaseModel):
    """Serialized task returned by API."""

    id: UUID
    title: str
    description: str
    location: str | None = None
    category_id: str | None = None
    creator_id: str
    capacity: int = Field(ge=1)
    active_participants: int = Field(ge=0)
    available_slots: int = Field(ge=0)
    status: TaskStatusValue
    scheduled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: TaskSnapshot) -> TaskResponse:
        return cls(
            id=snapshot.id,
            title=snapshot.title,
            description=snapshot.description,
            location=snapshot.location,
            category_id=snapshot.category_id,
            creator_id=snapshot.creator_id,
            capacity=snapshot.capacity,
            active_participants=snapshot.active_participants,
            available_slots=snapshot.available_slots,
            status=snapshot.status.value,
            scheduled_at=snapshot.scheduled_at,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
            completed_at=snapshot.completed_at,
        )
