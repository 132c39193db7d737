"""
Database Dependencies for FastAPI Routes

This module provides dependency injection functions for database sessions.

Routes declare the session they need and FastAPI provides it:

@router.get("/boards/{board_id}")
async def get_board(board_id: str, db: DBSession):
    return await BoardRepository(db).get_by_id(board_id)

The session is closed when the request finishes, and rolled back if the
route raised.
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forumyzer.db.session import get_session


# ================================
# Database Session Dependency
# ================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    Each request gets its own session. Changes must be committed explicitly
    (the board repository does this in flush()); anything uncommitted is
    rolled back when the request fails.

    Yields:
        AsyncSession: Database session for the current request
    """
    async for session in get_session():
        yield session


# Reusable annotation: `db: DBSession` instead of `db: AsyncSession = Depends(get_db)`
DBSession = Annotated[AsyncSession, Depends(get_db)]


# ================================
# Testing Helpers
# ================================

def get_db_override(session_factory: Callable[[], AsyncSession]) -> Callable:
    """
    Create a dependency override for testing.

    Usage in Tests:
    ---------------
    app.dependency_overrides[get_db] = get_db_override(test_session_factory)
    response = await client.get("/api/v1/boards")
    app.dependency_overrides.clear()

    Args:
        session_factory: Factory for the sessions to use instead of the real ones

    Returns:
        A function that yields one test session per request
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    return _override


__all__ = [
    "get_db",
    "DBSession",
    "get_db_override",
]
