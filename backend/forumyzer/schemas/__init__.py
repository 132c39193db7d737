"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from forumyzer.schemas.boards import (
    BoardCreateRequest,
    BoardList,
    BoardResponse,
    BoardSummary,
    BoardUpsert,
    ForumizeRequest,
    ForumizeResponse,
    MessageResponse,
)
from forumyzer.schemas.comments import BoardStats, CategoryStat, Comment, CommentCategory
from forumyzer.schemas.live import (
    ChatMessage,
    LiveChatPage,
    LiveChatResult,
    LivePollStatus,
    LiveStartRequest,
    LiveStatus,
    LiveStopRequest,
    LiveTrackingResult,
)

__all__ = [
    # Comments
    "Comment",
    "CommentCategory",
    "CategoryStat",
    "BoardStats",
    # Boards
    "BoardUpsert",
    "BoardCreateRequest",
    "BoardResponse",
    "BoardSummary",
    "BoardList",
    "ForumizeRequest",
    "ForumizeResponse",
    "MessageResponse",
    # Live
    "LiveStatus",
    "ChatMessage",
    "LiveChatPage",
    "LiveChatResult",
    "LiveTrackingResult",
    "LivePollStatus",
    "LiveStartRequest",
    "LiveStopRequest",
]
