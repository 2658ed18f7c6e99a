"""Concurrent joins against a file-backed SQLite database."""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from volunteer_tasks.db.models.participation import Participation
from volunteer_tasks.db.models.task import TaskStatus
from volunteer_tasks.domain.errors import AlreadyActiveError, CapacityExceededError
from volunteer_tasks.services.authorization import Role
from volunteer_tasks.services.participation_service import JoinTaskInput
from volunteer_tasks.services.task_service import CreateTaskInput

# Every contended round commits one writer, so bursts settle well within this.
MAX_ATTEMPTS = 50


def _create_task(
    factory: sessionmaker[Session],
    build_services: Callable[..., Any],
    capacity: int,
) -> UUID:
    with factory() as session:
        services = build_services(session, "alice", Role.REQUESTER)
        snapshot = services.tasks.create_task(
            CreateTaskInput(
                caller_id="alice",
                title="Sandbag the river wall",
                description="Fill and stack sandbags before the storm arrives.",
                capacity=capacity,
            )
        )
    return snapshot.id


def _join_burst(
    factory: sessionmaker[Session],
    build_services: Callable[..., Any],
    task_id: UUID,
    volunteers: list[str],
) -> list[str]:
    barrier = threading.Barrier(len(volunteers))

    def attempt(volunteer_id: str) -> str:
        with factory() as session:
            services = build_services(
                session,
                volunteer_id,
                Role.VOLUNTEER,
                max_attempts=MAX_ATTEMPTS,
            )
            barrier.wait()
            try:
                services.participations.join(
                    JoinTaskInput(task_id=task_id, caller_id=volunteer_id)
                )
            except CapacityExceededError:
                return "capacity_exceeded"
            except AlreadyActiveError:
                return "already_active"
            return "admitted"

    with ThreadPoolExecutor(max_workers=len(volunteers)) as executor:
        return list(executor.map(attempt, volunteers))


def _active_count(factory: sessionmaker[Session], task_id: UUID) -> int:
    with factory() as session:
        statement = select(func.count(Participation.id)).where(
            Participation.task_id == task_id,
            Participation.active.is_(True),
        )
        return int(session.scalar(statement) or 0)


@pytest.mark.parametrize("run", range(5))
@pytest.mark.parametrize(("capacity", "extra"), [(1, 3), (3, 4)])
def test_concurrent_joins_admit_exactly_capacity(
    file_session_factory: sessionmaker[Session],
    build_services: Callable[..., Any],
    run: int,
    capacity: int,
    extra: int,
) -> None:
    task_id = _create_task(file_session_factory, build_services, capacity)
    volunteers = [f"volunteer-{run}-{index}" for index in range(capacity + extra)]

    outcomes = _join_burst(file_session_factory, build_services, task_id, volunteers)

    assert outcomes.count("admitted") == capacity
    assert outcomes.count("capacity_exceeded") == extra
    assert _active_count(file_session_factory, task_id) == capacity

    with file_session_factory() as session:
        services = build_services(session, "alice")
        snapshot = services.tasks.get_task(task_id)
    assert snapshot.status == TaskStatus.IN_PROGRESS
    assert snapshot.active_participants == capacity


def test_concurrent_duplicate_joins_keep_one_active_row(
    file_session_factory: sessionmaker[Session],
    build_services: Callable[..., Any],
) -> None:
    task_id = _create_task(file_session_factory, build_services, capacity=5)

    outcomes = _join_burst(
        file_session_factory,
        build_services,
        task_id,
        ["bob"] * 6,
    )

    assert outcomes.count("admitted") == 1
    assert outcomes.count("already_active") == 5
    assert _active_count(file_session_factory, task_id) == 1
