from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from volunteer_tasks.api.app import create_app
from volunteer_tasks.api.authorization import RequestAuthorizationPolicy
from volunteer_tasks.db.base import Base, import_orm_models
from volunteer_tasks.db.session import get_db_session
from volunteer_tasks.domain.clock import utc_now
from volunteer_tasks.domain.task_lifecycle import CapacityStatusPolicy
from volunteer_tasks.repositories.participation_repository import (
    ParticipationRepository,
)
from volunteer_tasks.repositories.task_repository import TaskRepository
from volunteer_tasks.services.authorization import Role
from volunteer_tasks.services.capacity_guard import CapacityGuard
from volunteer_tasks.services.contention import ContentionRetrier
from volunteer_tasks.services.lifecycle_engine import LifecycleEngine
from volunteer_tasks.services.participation_service import ParticipationService
from volunteer_tasks.services.task_service import TaskService


class Services(NamedTuple):
    tasks: TaskService
    participations: ParticipationService


ServicesBuilder = Callable[..., Services]


def _session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield _session_factory(engine)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def file_session_factory(
    tmp_path: Path,
) -> Generator[sessionmaker[Session], None, None]:
    """Session factory over a file database, one connection per thread."""

    import_orm_models()
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'volunteer_tasks.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        pool_size=32,
        max_overflow=0,
    )
    Base.metadata.create_all(engine)
    try:
        yield _session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def build_services() -> ServicesBuilder:
    """Wire real services for one caller on top of a session."""

    def build(
        session: Session,
        caller_id: str,
        *roles: Role,
        max_attempts: int = 3,
        policy: CapacityStatusPolicy = CapacityStatusPolicy.AUTO,
        clock: Callable[[], datetime] = utc_now,
    ) -> Services:
        task_repository = TaskRepository(session)
        participation_repository = ParticipationRepository(session)
        authorization_policy = RequestAuthorizationPolicy(
            caller_id=caller_id,
            roles=roles,
            task_repository=task_repository,
        )
        lifecycle_engine = LifecycleEngine(
            task_repository=task_repository,
            participation_repository=participation_repository,
            policy=policy,
            clock=clock,
        )
        retrier = ContentionRetrier(session=session, max_attempts=max_attempts)
        return Services(
            tasks=TaskService(
                task_repository=task_repository,
                participation_repository=participation_repository,
                lifecycle_engine=lifecycle_engine,
                authorization_policy=authorization_policy,
                session=session,
                retrier=retrier,
                clock=clock,
            ),
            participations=ParticipationService(
                capacity_guard=CapacityGuard(
                    task_repository=task_repository,
                    participation_repository=participation_repository,
                    clock=clock,
                ),
                lifecycle_engine=lifecycle_engine,
                task_repository=task_repository,
                participation_repository=participation_repository,
                authorization_policy=authorization_policy,
                session=session,
                retrier=retrier,
            ),
        )

    return build


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def caller_headers() -> Callable[..., dict[str, str]]:
    def build(caller_id: str, *roles: str) -> dict[str, str]:
        headers = {"X-Caller-Id": caller_id}
        if roles:
            headers["X-Caller-Roles"] = ",".join(roles)
        return headers

    return build


@pytest.fixture
def acting_as(
    sqlite_session_factory: sessionmaker[Session],
    build_services: ServicesBuilder,
) -> Callable[..., AbstractContextManager[Services]]:
    """Open a fresh session and services for one caller, like one request."""

    @contextmanager
    def act(caller_id: str, *roles: Role, **options: object) -> Iterator[Services]:
        with sqlite_session_factory() as session:
            yield build_services(session, caller_id, *roles, **options)

    return act
