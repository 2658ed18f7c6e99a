"""Classification of database errors caused by write contention."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError

LOCK_NOT_AVAILABLE = "55P03"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"

_TRANSIENT_SQLSTATES = frozenset(
    {LOCK_NOT_AVAILABLE, SERIALIZATION_FAILURE, DEADLOCK_DETECTED}
)
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def _sqlstate(exc: DBAPIError) -> str | None:
    driver_error = exc.orig
    # psycopg 3 exposes ``sqlstate``, psycopg2 ``pgcode``.
    return getattr(driver_error, "sqlstate", None) or getattr(
        driver_error, "pgcode", None
    )


def is_lock_contention(exc: DBAPIError) -> bool:
    """Return whether a driver error means another writer holds the lock."""

    if _sqlstate(exc) in _TRANSIENT_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)


def is_active_pair_conflict(exc: IntegrityError) -> bool:
    """Return whether an insert lost the race on the active-pair unique index."""

    message = str(exc.orig)
    return "uq_participations_task_volunteer_active" in message or (
        "UNIQUE constraint failed" in message
        and "participations.task_id" in message
        and "participations.volunteer_id" in message
    )
