"""Header-based authorization policy for API requests."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from volunteer_tasks.services.authorization import Role
from volunteer_tasks.services.ports import TaskRepositoryProtocol


class RequestAuthorizationPolicy:
    """Answers role and ownership questions for the current API caller."""

    def __init__(
        self,
        *,
        caller_id: str,
        roles: Iterable[Role],
        task_repository: TaskRepositoryProtocol,
    ) -> None:
        self._caller_id = caller_id
        self._roles = frozenset(roles)
        self._task_repository = task_repository

    def has_role(self, caller_id: str, role: Role) -> bool:
        return caller_id == self._caller_id and role in self._roles

    def is_owner(self, caller_id: str, task_id: UUID) -> bool:
        return self._task_repository.get_creator_id(task_id) == caller_id
