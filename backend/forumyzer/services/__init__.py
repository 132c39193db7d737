"""Business logic services."""

from forumyzer.services.board_service import BoardService
from forumyzer.services.classifier import CommentClassifier, get_comment_classifier
from forumyzer.services.forumize_service import ForumizeService
from forumyzer.services.live_chat import LiveChatProcessor
from forumyzer.services.live_poller import LivePollCoordinator, get_live_poll_coordinator
from forumyzer.services.youtube import YouTubeService, get_youtube_service

__all__ = [
    "BoardService",
    "CommentClassifier",
    "get_comment_classifier",
    "ForumizeService",
    "LiveChatProcessor",
    "LivePollCoordinator",
    "get_live_poll_coordinator",
    "YouTubeService",
    "get_youtube_service",
]
