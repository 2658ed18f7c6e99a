"""ORM models for the volunteer_tasks domain."""

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import Task, TaskStatus

__all__ = [
    "Participation",
    "Task",
    "TaskStatus",
]
