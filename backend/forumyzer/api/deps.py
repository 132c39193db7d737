"""
Service dependencies for API routes.

Services that need configuration (a YouTube API key) are created here so
that missing configuration becomes a 503 instead of an unhandled error.
"""

from fastapi import Depends, HTTPException, status

from forumyzer.core.logging import get_logger
from forumyzer.db.deps import DBSession
from forumyzer.repositories.board_repository import BoardRepository
from forumyzer.services.board_service import BoardService
from forumyzer.services.classifier import CommentClassifier, get_comment_classifier
from forumyzer.services.forumize_service import ForumizeService
from forumyzer.services.live_poller import LivePollCoordinator, get_live_poll_coordinator
from forumyzer.services.youtube import (
    YouTubeAPIError,
    YouTubeQuotaExceededError,
    YouTubeService,
    YouTubeVideoNotFoundError,
    get_youtube_service,
)

logger = get_logger(__name__)

YOUTUBE_NOT_CONFIGURED = "YouTube API is not configured on this server."


def get_board_service(db: DBSession) -> BoardService:
    return BoardService(BoardRepository(db))


def get_youtube_service_dep() -> YouTubeService:
    try:
        return get_youtube_service()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=YOUTUBE_NOT_CONFIGURED
        )


def get_classifier() -> CommentClassifier:
    return get_comment_classifier()


def get_forumize_service(
    youtube: YouTubeService = Depends(get_youtube_service_dep),
    classifier: CommentClassifier = Depends(get_classifier)
) -> ForumizeService:
    return ForumizeService(youtube, classifier)


def get_live_coordinator() -> LivePollCoordinator:
    try:
        return get_live_poll_coordinator()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=YOUTUBE_NOT_CONFIGURED
        )


def youtube_error_to_http(e: YouTubeAPIError) -> HTTPException:
    """Map a YouTube adapter error onto the HTTP error returned to the client."""
    if isinstance(e, YouTubeQuotaExceededError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="YouTube API quota exceeded. Please try again later."
        )
    if isinstance(e, YouTubeVideoNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.error("youtube_request_failed", error=str(e))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"YouTube API error: {str(e)}"
    )
