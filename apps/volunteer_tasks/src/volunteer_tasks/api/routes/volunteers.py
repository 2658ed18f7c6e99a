"""Routes scoped to the calling volunteer."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from volunteer_tasks.api.dependencies import (
    Caller,
    get_caller,
    get_participation_service,
)
from volunteer_tasks.api.schemas.participations import (
    ParticipationHistoryItemResponse,
    ParticipationHistoryResponse,
    VolunteerStatisticsResponse,
)
from volunteer_tasks.services.participation_service import ParticipationService

router = APIRouter(prefix="/volunteers/me", tags=["Volunteers"])


@router.get("/participations", response_model=ParticipationHistoryResponse)
def get_participation_history(
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
) -> ParticipationHistoryResponse:
    """List every participation of the caller, newest first."""

    items = service.participation_history(caller.caller_id)
    return ParticipationHistoryResponse(
        volunteer_id=caller.caller_id,
        items=[ParticipationHistoryItemResponse.from_item(item) for item in items],
        total=len(items),
    )


@router.get("/statistics", response_model=VolunteerStatisticsResponse)
def get_volunteer_statistics(
    caller: Annotated[Caller, Depends(get_caller)],
    service: Annotated[ParticipationService, Depends(get_participation_service)],
) -> VolunteerStatisticsResponse:
    return VolunteerStatisticsResponse.from_statistics(
        service.volunteer_statistics(caller.caller_id)
    )
