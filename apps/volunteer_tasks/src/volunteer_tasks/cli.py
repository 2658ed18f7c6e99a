"""CLI bootstrap for volunteer-tasks."""

import logging
from uuid import UUID

import typer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from volunteer_tasks.core.settings import get_settings
from volunteer_tasks.db.base import Base, import_orm_models
from volunteer_tasks.db.session import SessionFactory, engine
from volunteer_tasks.domain.errors import TaskNotFoundError
from volunteer_tasks.repositories.participation_repository import (
    ParticipationRepository,
)
from volunteer_tasks.repositories.task_repository import TaskRepository
from volunteer_tasks.services.views import TaskSnapshot

app = typer.Typer(help="CLI for volunteer task operations.")
TASK_ID_ARGUMENT = typer.Argument(..., help="Task identifier (UUID).")

logger = logging.getLogger(__name__)


@app.callback()
def configure() -> None:
    """Configure logging from application settings."""
    logging.basicConfig(level=get_settings().log_level)


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the configured database answers queries."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("healthcheck_failed", extra={"error_type": type(exc).__name__})
        typer.echo("volunteer-tasks database is unavailable", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo("volunteer-tasks is ready")


@app.command("create-schema")
def create_schema() -> None:
    """Create tables directly from ORM metadata, for local development."""
    import_orm_models()
    Base.metadata.create_all(engine)
    typer.echo("Schema created")


@app.command("show-task")
def show_task(task_id: UUID = TASK_ID_ARGUMENT) -> None:
    """Print one task with its active participants."""
    with SessionFactory() as session:
        task = TaskRepository(session).get_task(task_id)
        if task is None:
            error = TaskNotFoundError(details={"task_id": str(task_id)})
            typer.echo(error.message, err=True)
            raise typer.Exit(code=1)
        participations = ParticipationRepository(session).list_active_for_task(
            task_id
        )
        snapshot = TaskSnapshot.from_task(task, len(participations))

    typer.echo(f"Task {snapshot.id}: {snapshot.title}")
    typer.echo(f"Status: {snapshot.status.value}")
    typer.echo(
        f"Volunteers: {snapshot.active_participants}/{snapshot.capacity} "
        f"(free slots: {snapshot.available_slots})"
    )
    for participation in participations:
        typer.echo(f"- {participation.volunteer_id}")


def main() -> None:
    """Run the volunteer-tasks CLI application."""
    app()


if __name__ == "__main__":
    main()
