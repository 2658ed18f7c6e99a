"""Participation ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from volunteer_tasks.db.base import Base


class Participation(Base):
    """One volunteer's association with one task, active or historical.

    Rows are never deleted while their task exists: leaving flips ``active``
    and stamps ``left_at``; joining again creates a fresh row.
    """

    __tablename__ = "participations"
    __table_args__ = (
        CheckConstraint(
            "(active AND left_at IS NULL) OR (NOT active AND left_at IS NOT NULL)",
            name="ck_participations_left_at_matches_active",
        ),
        Index(
            "uq_participations_task_volunteer_active",
            "task_id",
            "volunteer_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
        Index(
            "ix_participations_task_active_joined_at",
            "task_id",
            "active",
            "joined_at",
        ),
        Index("ix_participations_volunteer_id", "volunteer_id"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    volunteer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )
    note: Mapped[str | None] = mapped_column(String(500), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    left_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    task: Mapped[Any] = relationship("Task", back_populates="participations")
