"""Authorization capability consumed by task services."""

from __future__ import annotations

import enum
from typing import Protocol
from uuid import UUID


class Role(enum.StrEnum):
    """Caller roles recognised by task services."""

    VOLUNTEER = "volunteer"
    REQUESTER = "requester"
    ADMIN = "admin"


class AuthorizationPolicy(Protocol):
    """Role and ownership checks supplied by the surrounding auth layer."""

    def has_role(self, caller_id: str, role: Role) -> bool: ...

    def is_owner(self, caller_id: str, task_id: UUID) -> bool: ...
