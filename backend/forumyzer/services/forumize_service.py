"""
Forumize pipeline for recorded (non-live) videos.

fetch comment threads → classify the whole tree → drop flagged comments →
compute stats, optionally saved to the video's message board.
"""

from typing import Optional

from forumyzer.core.logging import get_logger
from forumyzer.schemas.boards import BoardUpsert, ForumizeResponse
from forumyzer.services.board_service import BoardService
from forumyzer.services.board_stats import compute_board_stats, count_comments
from forumyzer.services.classifier import CommentClassifier, remove_flagged
from forumyzer.services.youtube import YouTubeService

logger = get_logger(__name__)


class ForumizeService:
    """
    Turns a video's comment section into a classified board.

    Usage:
    ------
    service = ForumizeService(youtube, classifier)
    result = await service.forumize("dQw4w9WgXcQ", max_results=50)
    """

    def __init__(self, youtube: YouTubeService, classifier: CommentClassifier):
        self.youtube = youtube
        self.classifier = classifier

    async def forumize(
        self,
        video_id: str,
        max_results: Optional[int] = None,
        use_ai: bool = True,
        remove_spam: bool = True
    ) -> ForumizeResponse:
        """
        Fetch and classify a video's comments.

        Args:
            video_id: YouTube video ID
            max_results: Comment threads to fetch
            use_ai: Use the AI backend when one is configured
            remove_spam: Drop comments marked should_remove (replies included)

        Returns:
            ForumizeResponse with the threads and their stats (not saved)

        Raises:
            YouTubeAPIError: On upstream failures
        """
        threads = await self.youtube.fetch_comment_threads(video_id, max_results=max_results)
        classified = await self.classifier.classify_tree(threads, use_fallback=not use_ai)

        kept = remove_flagged(classified) if remove_spam else classified
        removed = count_comments(classified) - count_comments(kept)

        logger.info(
            "video_forumized",
            video_id=video_id,
            threads=len(kept),
            removed=removed,
            ai=use_ai and self.classifier.ai_enabled,
        )

        return ForumizeResponse(
            video_id=video_id,
            threads=kept,
            stats=compute_board_stats(kept, removed_comments=removed),
            use_ai=use_ai and self.classifier.ai_enabled,
            spam_removed=remove_spam,
        )

    async def forumize_to_board(
        self,
        board_service: BoardService,
        video_id: str,
        video_title: Optional[str] = None,
        video_channel: Optional[str] = None,
        user_id: Optional[str] = None,
        **options
    ) -> ForumizeResponse:
        """
        Forumize video_id and create-or-update its board.

        Missing title/channel are looked up on YouTube. Options are passed
        through to forumize().
        """
        result = await self.forumize(video_id, **options)

        if not video_title:
            details = await self.youtube.get_video_details(video_id)
            video_title = details['title']
            video_channel = video_channel or details['channel_title']

        board = await board_service.create_or_update(
            BoardUpsert(
                video_id=video_id,
                video_title=video_title,
                video_channel=video_channel,
                is_live=False,
                threads=result.threads,
                removed_comments=result.stats.removed_comments,
            ),
            user_id=user_id,
        )

        result.board_id = board.id
        result.share_token = board.share_token
        return result
