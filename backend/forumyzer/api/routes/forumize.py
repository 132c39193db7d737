"""
Forumize API endpoint: classify the comments of a recorded video.
"""

from fastapi import APIRouter, Depends

from forumyzer.api.deps import get_board_service, get_forumize_service, youtube_error_to_http
from forumyzer.core.logging import get_logger
from forumyzer.schemas.boards import ForumizeRequest, ForumizeResponse
from forumyzer.services.board_service import BoardService
from forumyzer.services.forumize_service import ForumizeService
from forumyzer.services.youtube import YouTubeAPIError, YouTubeService

logger = get_logger(__name__)

router = APIRouter(tags=["Forumize"])


@router.post(
    "/forumize",
    response_model=ForumizeResponse,
    summary="Forumize a video's comments",
    description=(
        "Fetch comment threads of a video, classify them, drop spam and toxic "
        "comments and compute category stats. Saved to the video's board unless "
        "save=false."
    ),
    responses={
        200: {"description": "Comments classified"},
        404: {"description": "Video not found"},
        429: {"description": "YouTube API quota exceeded"},
        502: {"description": "YouTube API error"},
        503: {"description": "YouTube API not configured"},
    }
)
async def forumize_video(
    request: ForumizeRequest,
    forumizer: ForumizeService = Depends(get_forumize_service),
    boards: BoardService = Depends(get_board_service)
):
    video_id = YouTubeService.normalize_video_id(request.video_id)
    options = {
        "max_results": request.max_results,
        "use_ai": request.use_ai,
        "remove_spam": request.remove_spam,
    }

    try:
        if not request.save:
            return await forumizer.forumize(video_id, **options)

        return await forumizer.forumize_to_board(
            boards,
            video_id,
            video_title=request.video_title,
            video_channel=request.video_channel,
            user_id=request.user_id,
            **options
        )
    except YouTubeAPIError as e:
        raise youtube_error_to_http(e)
