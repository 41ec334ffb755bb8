"""API router for version 1."""
from fastapi import APIRouter

from app.api.v1.endpoints import cron, notifications


api_router = APIRouter()
api_router.include_router(notifications.router)
api_router.include_router(cron.router)
