"""
Live chat tracking API endpoints.

Starting a video runs the first poll inline and keeps polling it in the
background until the stream ends or it is stopped.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from forumyzer.api.deps import get_live_coordinator, youtube_error_to_http
from forumyzer.schemas.boards import MessageResponse
from forumyzer.schemas.live import (
    LivePollStatus,
    LiveStartRequest,
    LiveStopRequest,
    LiveTrackingResult,
)
from forumyzer.services.live_poller import LivePollCoordinator
from forumyzer.services.youtube import YouTubeAPIError, YouTubeService

router = APIRouter(prefix="/live", tags=["Live"])


@router.post(
    "/start",
    response_model=LiveTrackingResult,
    summary="Start tracking a live chat",
    description=(
        "Check that the video is live, classify the first page of its chat into "
        "a board and keep polling it. A video that is not live returns "
        "is_live=false with the reason."
    ),
    responses={
        200: {"description": "Tracking started, already running, or not live"},
        429: {"description": "YouTube API quota exceeded"},
        502: {"description": "YouTube API error"},
        503: {"description": "YouTube API not configured"},
    }
)
async def start_live(
    request: LiveStartRequest,
    coordinator: LivePollCoordinator = Depends(get_live_coordinator)
):
    video_id = YouTubeService.normalize_video_id(request.video_id)
    try:
        return await coordinator.start(
            video_id,
            remove_spam=request.remove_spam,
            user_id=request.user_id,
        )
    except YouTubeAPIError as e:
        raise youtube_error_to_http(e)


@router.post(
    "/stop",
    response_model=MessageResponse,
    summary="Stop tracking a live chat",
    responses={404: {"description": "Video is not being tracked"}},
)
async def stop_live(
    request: LiveStopRequest,
    coordinator: LivePollCoordinator = Depends(get_live_coordinator)
):
    video_id = YouTubeService.normalize_video_id(request.video_id)
    if not await coordinator.stop(video_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Live chat of {video_id} is not being tracked"
        )
    return MessageResponse(message=f"Stopped tracking {video_id}")


@router.get(
    "/{video_id}",
    response_model=LivePollStatus,
    summary="Live tracking status of a video",
)
async def live_status(
    video_id: str,
    coordinator: LivePollCoordinator = Depends(get_live_coordinator)
):
    return coordinator.status(video_id)
