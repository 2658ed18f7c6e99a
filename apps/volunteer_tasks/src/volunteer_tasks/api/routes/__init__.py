"""API v1 router registration."""

from fastapi import APIRouter

from volunteer_tasks.api.routes import participations, tasks, volunteers

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tasks.router)
v1_router.include_router(participations.router)
v1_router.include_router(volunteers.router)
