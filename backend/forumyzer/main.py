"""
Forumyzer API application.

Serves the forumize, board and live tracking routes under API_V1_PREFIX.
Live pollers run on this process's event loop, so shutting the app down
cancels them; their boards stay live and the Celery sweep resumes them.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger, setup_logging
from forumyzer.db.session import check_db_health, close_db, init_db
from forumyzer.services.live_poller import shutdown_live_poll_coordinator, tracked_video_ids

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "forumyzer_starting",
        environment=settings.APP_ENV,
        version=settings.APP_VERSION,
        ai_classifier=bool(settings.ANTHROPIC_API_KEY),
        youtube_configured=bool(settings.YOUTUBE_API_KEY),
    )

    await init_db()

    yield

    pollers = tracked_video_ids()
    logger.info("forumyzer_stopping", live_pollers=len(pollers))

    await shutdown_live_poll_coordinator()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Turns YouTube comment sections and live chats into classified, "
        "spam-free message boards."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Board payloads carry whole thread trees
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Database reachability plus the videos whose live chat this process polls.

    503 when the database is down; pollers can't persist without it.
    """
    db_healthy = await check_db_health()
    pollers = tracked_video_ids()

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "version": settings.APP_VERSION,
            "database": "connected" if db_healthy else "disconnected",
            "youtube_configured": bool(settings.YOUTUBE_API_KEY),
            "ai_classifier": bool(settings.ANTHROPIC_API_KEY),
            "live_pollers": len(pollers),
            "live_videos": pollers,
        }
    )


from forumyzer.api import api_router  # noqa: E402
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "Forumyzer could not process this request.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "forumyzer.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
