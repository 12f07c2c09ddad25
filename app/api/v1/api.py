# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import (
    sessions, credentials, activities, participations, admin_sessions, admin_users, realtime,
)

# Create main API router
api_router = APIRouter()

api_router.include_router(
    sessions.router,
    prefix="/sessions",
    tags=["sessions"]
)

api_router.include_router(
    credentials.router,
    prefix="/credentials",
    tags=["credentials"]
)

api_router.include_router(
    activities.router,
    prefix="/activities",
    tags=["activities"]
)

api_router.include_router(
    participations.router,
    prefix="/participations",
    tags=["participations"]
)

api_router.include_router(
    admin_sessions.router,
    prefix="/admin",
    tags=["admin-sessions"]
)

api_router.include_router(
    admin_users.router,
    prefix="/admin",
    tags=["admin-users"]
)

api_router.include_router(
    realtime.router,
    tags=["realtime"]
)
