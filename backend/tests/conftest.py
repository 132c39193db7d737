"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Tests run against a throwaway SQLite database (aiosqlite) per test, and
never talk to YouTube or Anthropic: those are replaced by mocks.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/tutorial/testing/
"""

import os

# Settings are read at import time, so the environment has to be in place
# before anything from forumyzer is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "testing"
os.environ["YOUTUBE_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Callable, List, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import forumyzer.models  # noqa: E402,F401
from forumyzer.db.base import Base  # noqa: E402
from forumyzer.db.deps import get_db, get_db_override  # noqa: E402
from forumyzer.main import app  # noqa: E402
from forumyzer.repositories.board_repository import BoardRepository  # noqa: E402
from forumyzer.schemas.comments import Comment, CommentCategory  # noqa: E402
from forumyzer.services.board_service import BoardService  # noqa: E402


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create a test database engine.

    A file database in tmp_path (rather than :memory:) so that every
    session opened during a test sees the same tables and rows.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'forumyzer-test.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (same options as AsyncSessionLocal)."""
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A database session for one test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def board_service(db_session: AsyncSession) -> BoardService:
    return BoardService(BoardRepository(db_session))


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints.

    Overrides the get_db dependency to use the test database.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/boards")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_db] = get_db_override(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# Comment Fixtures
# ================================

@pytest.fixture
def make_comment() -> Callable[..., Comment]:
    """
    Factory for comments.

    Usage:
        comment = make_comment("c1", "Great video!", published_at="2024-05-01T10:00:00Z")
    """
    def _make(
        comment_id: str,
        text: str = "Nice explanation, thanks for sharing",
        published_at: Optional[str] = "2024-05-01T10:00:00Z",
        author: str = "viewer",
        replies: Optional[List[Comment]] = None,
        category: Optional[CommentCategory] = None,
        should_remove: Optional[bool] = None,
    ) -> Comment:
        return Comment(
            id=comment_id,
            author=author,
            text=text,
            published_at=published_at,
            replies=replies or [],
            category=category,
            should_remove=should_remove,
        )

    return _make


@pytest.fixture
def sample_comments(make_comment) -> List[Comment]:
    """A small mixed comment section."""
    return [
        make_comment("c1", "check out my channel http://x.com", "2024-05-01T10:00:00Z"),
        make_comment("c2", "first", "2024-05-01T11:00:00Z"),
        make_comment(
            "c3",
            "How did you set up the lighting in this scene?",
            "2024-05-01T12:00:00Z",
            replies=[make_comment("c3r1", "you are an idiot", "2024-05-01T12:30:00Z")],
        ),
    ]


# ================================
# Pytest Hooks
# ================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires network and API keys)"
    )
