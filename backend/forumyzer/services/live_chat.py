"""
Live chat processing.

One pass of the live pipeline: check that the video is live, fetch a page
of chat messages from the stored cursor, classify them, drop what should be
removed and compute stats for the batch. The result carries the cursor for
the next pass; persisting it is left to the caller (see persist_live_result).
"""

from typing import List, Optional

from forumyzer.core.logging import get_logger
from forumyzer.models.message_board import MessageBoard
from forumyzer.schemas.boards import BoardUpsert
from forumyzer.schemas.comments import Comment
from forumyzer.schemas.live import ChatMessage, LiveChatResult
from forumyzer.services.board_service import BoardService
from forumyzer.services.board_stats import compute_board_stats
from forumyzer.services.classifier import CommentClassifier, remove_flagged
from forumyzer.services.youtube import YouTubeService

logger = get_logger(__name__)

NOT_LIVE_ERROR = "Video is not currently live"
UPCOMING_ERROR = "Stream is scheduled but not live yet"
ENDED_ERROR = "Live stream has ended"


def chat_message_to_comment(message: ChatMessage) -> Comment:
    """Live chat messages become reply-less comments with chat metadata."""
    return Comment(
        id=message.id,
        author=message.author,
        text=message.text,
        published_at=message.published_at,
        like_count=0,
        metadata={
            "type": message.type,
            "isChatOwner": message.is_chat_owner,
            "isChatModerator": message.is_chat_moderator,
            "isChatSponsor": message.is_chat_sponsor,
            "profileImageUrl": message.profile_image_url,
        },
    )


class LiveChatProcessor:
    """
    Fetch → classify → filter for one page of a video's live chat.

    Usage:
    ------
    processor = LiveChatProcessor(youtube, classifier)
    result = await processor.process("jfKfPfyJRdk", page_token=board.last_page_token)
    """

    def __init__(self, youtube: YouTubeService, classifier: CommentClassifier):
        self.youtube = youtube
        self.classifier = classifier

    async def process(
        self,
        video_id: str,
        page_token: Optional[str] = None,
        remove_spam: bool = True,
        use_fallback: bool = False
    ) -> LiveChatResult:
        """
        Run one pass over the live chat of video_id.

        Args:
            video_id: YouTube video ID
            page_token: Cursor returned by the previous pass (None to start)
            remove_spam: Drop comments the classifier marked for removal
            use_fallback: Force keyword heuristics

        Returns:
            LiveChatResult. A video that is not (or no longer) live gives
            is_live=False with an error message instead of raising.

        Raises:
            YouTubeAPIError: On upstream failures
        """
        status = await self.youtube.check_live_status(video_id)

        if not status.is_live or not status.live_chat_id:
            return LiveChatResult(
                is_live=False,
                error=UPCOMING_ERROR if status.is_upcoming else NOT_LIVE_ERROR,
                scheduled_start_time=status.scheduled_start_time,
                video_title=status.video_title,
                channel_title=status.channel_title,
            )

        page = await self.youtube.fetch_live_chat_page(status.live_chat_id, page_token)

        if page.offline_at:
            logger.info("live_chat_offline", video_id=video_id, offline_at=page.offline_at)
            return LiveChatResult(
                is_live=False,
                error=ENDED_ERROR,
                live_chat_id=status.live_chat_id,
                video_title=status.video_title,
                channel_title=status.channel_title,
            )

        comments = [chat_message_to_comment(message) for message in page.messages]
        classified = await self.classifier.classify_comments(comments, use_fallback=use_fallback)
        threads: List[Comment] = remove_flagged(classified) if remove_spam else classified
        removed = len(classified) - len(threads)

        logger.info(
            "live_chat_processed",
            video_id=video_id,
            fetched=len(comments),
            kept=len(threads),
            removed=removed,
        )

        return LiveChatResult(
            is_live=True,
            live_chat_id=status.live_chat_id,
            video_title=status.video_title,
            channel_title=status.channel_title,
            threads=threads,
            stats=compute_board_stats(threads, removed_comments=removed),
            next_page_token=page.next_page_token,
            polling_interval_millis=page.polling_interval_millis,
            message_count=len(comments),
            filtered_count=removed,
        )


async def persist_live_result(
    board_service: BoardService,
    video_id: str,
    result: LiveChatResult,
    user_id: Optional[str] = None
) -> MessageBoard:
    """Merge a live pass into the video's board and advance its cursor."""
    board = await board_service.create_or_update(
        BoardUpsert(
            video_id=video_id,
            video_title=result.video_title,
            video_channel=result.channel_title,
            is_live=True,
            live_chat_id=result.live_chat_id,
            threads=result.threads,
            removed_comments=result.stats.removed_comments if result.stats else 0,
        ),
        user_id=user_id,
    )

    await board_service.update_page_token(
        board.id,
        result.next_page_token,
        polling_interval_millis=result.polling_interval_millis,
    )
    return board
