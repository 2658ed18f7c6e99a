from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from pathlib import Path
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from typer.testing import CliRunner

from volunteer_tasks import cli
from volunteer_tasks.services.authorization import Role
from volunteer_tasks.services.participation_service import JoinTaskInput
from volunteer_tasks.services.task_service import CreateTaskInput

runner = CliRunner()


@pytest.fixture
def cli_database(
    monkeypatch: pytest.MonkeyPatch,
    sqlite_session_factory: sessionmaker[Session],
) -> sessionmaker[Session]:
    monkeypatch.setattr(cli, "SessionFactory", sqlite_session_factory)
    monkeypatch.setattr(cli, "engine", sqlite_session_factory.kw["bind"])
    return sqlite_session_factory


def test_healthcheck_reports_ready(cli_database: sessionmaker[Session]) -> None:
    result = runner.invoke(cli.app, ["healthcheck"])

    assert result.exit_code == 0
    assert "volunteer-tasks is ready" in result.output


def test_healthcheck_fails_when_database_is_unreachable(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    missing = tmp_path / "missing" / "volunteer_tasks.db"
    monkeypatch.setattr(cli, "engine", create_engine(f"sqlite+pysqlite:///{missing}"))

    result = runner.invoke(cli.app, ["healthcheck"])

    assert result.exit_code == 1


def test_show_task_prints_occupancy(
    cli_database: sessionmaker[Session],
    acting_as: Callable[..., AbstractContextManager],
) -> None:
    with acting_as("alice", Role.REQUESTER) as services:
        task_id = services.tasks.create_task(
            CreateTaskInput(
                caller_id="alice",
                title="Stock the food bank",
                description="Sort donations and fill the shelves.",
                capacity=2,
            )
        ).id
    with acting_as("bob", Role.VOLUNTEER) as services:
        services.participations.join(JoinTaskInput(task_id=task_id, caller_id="bob"))

    result = runner.invoke(cli.app, ["show-task", str(task_id)])

    assert result.exit_code == 0
    assert f"Task {task_id}: Stock the food bank" in result.output
    assert "Status: open" in result.output
    assert "Volunteers: 1/2 (free slots: 1)" in result.output
    assert "- bob" in result.output


def test_show_task_reports_unknown_task(cli_database: sessionmaker[Session]) -> None:
    result = runner.invoke(cli.app, ["show-task", str(uuid4())])

    assert result.exit_code == 1
