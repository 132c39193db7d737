"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from forumyzer.api.routes import boards, forumize, live

# Create main API router
api_router = APIRouter()

api_router.include_router(forumize.router)
api_router.include_router(boards.router)
api_router.include_router(live.router)
