"""API router composition for all route groups."""

from fastapi import APIRouter

from .routes import chat, home, households, preferences, watch

api_router = APIRouter()
api_router.include_router(households.router, prefix="/households", tags=["households"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])
api_router.include_router(home.router, prefix="/home", tags=["views"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(watch.router, tags=["watch"])
