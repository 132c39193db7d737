"""
YouTube Data API service for comment threads and live chat.

This module wraps the YouTube Data API v3 endpoints the pipeline reads from:
comment threads of a video, a video's live broadcast state, and pages of
live chat messages.

The googleapiclient requests are blocking, so each one is executed in a
worker thread to keep the event loop (and other live pollers) running.
"""

import asyncio
import re
from typing import Dict, List, Optional
from urllib.parse import urlparse, parse_qs

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger
from forumyzer.schemas.comments import Comment
from forumyzer.schemas.live import ChatMessage, LiveChatPage, LiveStatus

logger = get_logger(__name__)


class YouTubeAPIError(Exception):
    """Base exception for YouTube API errors."""
    pass


class YouTubeQuotaExceededError(YouTubeAPIError):
    """Raised when YouTube API quota is exceeded."""
    pass


class YouTubeVideoNotFoundError(YouTubeAPIError):
    """Raised when a YouTube video (or its live chat) is not found."""
    pass


class YouTubeService:
    """
    Service for interacting with YouTube Data API v3.

    Provides methods for:
    - Fetching comment threads (top-level comments + replies)
    - Checking whether a video is live right now
    - Fetching live chat messages page by page
    - URL parsing and validation

    Example:
        >>> youtube = YouTubeService()
        >>> threads = await youtube.fetch_comment_threads("dQw4w9WgXcQ", max_results=20)
        >>> status = await youtube.check_live_status("jfKfPfyJRdk")
        >>> page = await youtube.fetch_live_chat_page(status.live_chat_id)
    """

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize YouTube service with API key.

        Args:
            api_key: YouTube Data API key. If None, uses settings.YOUTUBE_API_KEY

        Raises:
            ValueError: If no API key is provided or found in settings
        """
        self.api_key = api_key or settings.YOUTUBE_API_KEY

        if not self.api_key:
            raise ValueError(
                "YouTube API key is required. Set YOUTUBE_API_KEY in environment variables."
            )

        self._youtube = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize YouTube API client."""
        try:
            self._youtube = build(
                'youtube',
                'v3',
                developerKey=self.api_key,
                cache_discovery=False  # Avoid caching issues in production
            )
            logger.info("youtube_client_initialized")
        except Exception as e:
            logger.error("youtube_client_initialization_failed", error=str(e))
            raise YouTubeAPIError(f"Failed to initialize YouTube API: {e}")

    async def _execute(self, request) -> Dict:
        """Run a googleapiclient request without blocking the event loop."""
        return await asyncio.to_thread(request.execute)

    @staticmethod
    def _raise_for_http_error(e: HttpError, not_found_message: str) -> None:
        """Translate an HttpError into the matching YouTubeAPIError."""
        status = e.resp.status
        if status in (403, 429) and 'quota' in str(e).lower():
            raise YouTubeQuotaExceededError("YouTube API quota exceeded") from e
        if status == 404:
            raise YouTubeVideoNotFoundError(not_found_message) from e
        logger.error("youtube_api_error", status=status, error=str(e))
        raise YouTubeAPIError(f"YouTube API error: {e}") from e

    # ========================================
    # Comment Threads
    # ========================================

    async def fetch_comment_threads(
        self,
        video_id: str,
        max_results: Optional[int] = None
    ) -> List[Comment]:
        """
        Get top-level comment threads of a video, with their replies.

        Args:
            video_id: YouTube video ID
            max_results: Threads to fetch (default: settings.YOUTUBE_COMMENTS_MAX_RESULTS, max: 100)

        Returns:
            List of Comment trees (unclassified), in API order

        Raises:
            YouTubeVideoNotFoundError: If the video doesn't exist
            YouTubeQuotaExceededError: If API quota exceeded
            YouTubeAPIError: For other API errors (e.g. comments disabled)
        """
        max_results = max_results or settings.YOUTUBE_COMMENTS_MAX_RESULTS

        try:
            response = await self._execute(
                self._youtube.commentThreads().list(
                    part='snippet,replies',
                    videoId=video_id,
                    maxResults=min(max_results, 100),  # API limit is 100
                    textFormat='plainText'
                )
            )
        except HttpError as e:
            self._raise_for_http_error(e, f"Video not found: {video_id}")

        threads = [self._parse_comment_thread(item) for item in response.get('items', [])]

        logger.info("comment_threads_fetched", video_id=video_id, threads=len(threads))
        return threads

    # ========================================
    # Live Streaming
    # ========================================

    async def check_live_status(self, video_id: str) -> LiveStatus:
        """
        Check whether a video is currently broadcasting live.

        An unknown video is reported as not live rather than raising.

        Args:
            video_id: YouTube video ID

        Returns:
            LiveStatus with the active live chat id when live
        """
        try:
            response = await self._execute(
                self._youtube.videos().list(
                    part='liveStreamingDetails,snippet',
                    id=video_id
                )
            )
        except HttpError as e:
            self._raise_for_http_error(e, f"Video not found: {video_id}")

        if not response.get('items'):
            return LiveStatus(is_live=False)

        video = response['items'][0]
        snippet = video.get('snippet', {})
        live_details = video.get('liveStreamingDetails') or {}
        broadcast = snippet.get('liveBroadcastContent')

        return LiveStatus(
            is_live=broadcast == 'live',
            live_chat_id=live_details.get('activeLiveChatId'),
            video_title=snippet.get('title'),
            channel_title=snippet.get('channelTitle'),
            is_upcoming=broadcast == 'upcoming',
            scheduled_start_time=live_details.get('scheduledStartTime'),
        )

    async def fetch_live_chat_page(
        self,
        live_chat_id: str,
        page_token: Optional[str] = None,
        max_results: Optional[int] = None
    ) -> LiveChatPage:
        """
        Fetch one page of live chat messages.

        Args:
            live_chat_id: Live chat ID from check_live_status
            page_token: Cursor from the previous page (None for the first page)
            max_results: Messages per page (default: settings.YOUTUBE_LIVE_CHAT_MAX_RESULTS)

        Returns:
            LiveChatPage with the messages, the next cursor and the poll delay
            the API asks clients to wait before the next request

        Raises:
            YouTubeVideoNotFoundError: If the live chat no longer exists
            YouTubeAPIError: For other API errors
        """
        params = {
            'liveChatId': live_chat_id,
            'part': 'snippet,authorDetails',
            'maxResults': max_results or settings.YOUTUBE_LIVE_CHAT_MAX_RESULTS,
        }
        if page_token:
            params['pageToken'] = page_token

        try:
            response = await self._execute(self._youtube.liveChatMessages().list(**params))
        except HttpError as e:
            self._raise_for_http_error(e, f"Live chat not found: {live_chat_id}")

        messages = [self._parse_chat_message(item) for item in response.get('items', [])]

        return LiveChatPage(
            messages=messages,
            next_page_token=response.get('nextPageToken'),
            polling_interval_millis=(
                response.get('pollingIntervalMillis') or settings.LIVE_POLL_DEFAULT_INTERVAL_MS
            ),
            offline_at=response.get('offlineAt'),
        )

    # ========================================
    # Videos
    # ========================================

    async def get_video_details(self, video_id: str) -> Dict:
        """
        Get title and channel of a video.

        Returns:
            {'video_id': str, 'title': str, 'channel_id': str, 'channel_title': str}

        Raises:
            YouTubeVideoNotFoundError: If video doesn't exist
        """
        try:
            response = await self._execute(
                self._youtube.videos().list(part='snippet', id=video_id)
            )
        except HttpError as e:
            self._raise_for_http_error(e, f"Video not found: {video_id}")

        if not response.get('items'):
            raise YouTubeVideoNotFoundError(f"Video not found: {video_id}")

        item = response['items'][0]
        snippet = item.get('snippet', {})
        return {
            'video_id': item['id'],
            'title': snippet.get('title', ''),
            'channel_id': snippet.get('channelId'),
            'channel_title': snippet.get('channelTitle', ''),
        }

    # ========================================
    # Utility Functions
    # ========================================

    @staticmethod
    def extract_video_id_from_url(url: str) -> Optional[str]:
        """
        Extract video ID from YouTube URL.

        Supports multiple URL formats:
        - https://www.youtube.com/watch?v=VIDEO_ID
        - https://youtu.be/VIDEO_ID
        - https://www.youtube.com/embed/VIDEO_ID
        - https://www.youtube.com/live/VIDEO_ID

        Returns:
            Video ID if found, None otherwise
        """
        parsed = urlparse(url)
        if 'youtube.com' in parsed.netloc:
            query_params = parse_qs(parsed.query)
            if 'v' in query_params:
                return query_params['v'][0]

            for prefix in ('/embed/', '/live/', '/shorts/'):
                if prefix in parsed.path:
                    return parsed.path.split(prefix)[1].split('/')[0]

        if 'youtu.be' in parsed.netloc:
            return parsed.path.lstrip('/') or None

        return None

    @staticmethod
    def validate_video_id(video_id: str) -> bool:
        """
        Validate YouTube video ID format.

        Video IDs are 11 characters long containing alphanumeric
        characters, hyphens, and underscores.
        """
        if not video_id or len(video_id) != 11:
            return False

        return bool(re.match(r'^[a-zA-Z0-9_-]{11}$', video_id))

    @classmethod
    def normalize_video_id(cls, value: str) -> str:
        """Accept either a bare video ID or any supported YouTube URL."""
        value = value.strip()
        if value.startswith('http'):
            return cls.extract_video_id_from_url(value) or value
        return value

    # ========================================
    # Helper Methods
    # ========================================

    @staticmethod
    def _parse_comment(comment_id: str, snippet: Dict) -> Comment:
        return Comment(
            id=comment_id,
            author=snippet.get('authorDisplayName', ''),
            text=snippet.get('textOriginal') or snippet.get('textDisplay', ''),
            published_at=snippet.get('publishedAt'),
            like_count=int(snippet.get('likeCount', 0) or 0),
        )

    def _parse_comment_thread(self, item: Dict) -> Comment:
        """Parse a commentThreads item into a Comment with its replies."""
        top_level = item['snippet']['topLevelComment']
        comment = self._parse_comment(top_level['id'], top_level['snippet'])

        replies = (item.get('replies') or {}).get('comments', [])
        if replies:
            comment.replies = [
                self._parse_comment(reply['id'], reply['snippet'])
                for reply in replies
            ]

        return comment

    @staticmethod
    def _parse_chat_message(item: Dict) -> ChatMessage:
        """Parse a liveChatMessages item."""
        snippet = item.get('snippet', {})
        author = item.get('authorDetails', {})
        text = (
            snippet.get('displayMessage')
            or (snippet.get('textMessageDetails') or {}).get('messageText')
            or ''
        )

        return ChatMessage(
            id=item['id'],
            author=author.get('displayName', ''),
            text=text,
            published_at=snippet.get('publishedAt'),
            type=snippet.get('type'),
            is_chat_owner=bool(author.get('isChatOwner', False)),
            is_chat_moderator=bool(author.get('isChatModerator', False)),
            is_chat_sponsor=bool(author.get('isChatSponsor', False)),
            profile_image_url=author.get('profileImageUrl'),
        )


# ========================================
# Helper Functions
# ========================================

def get_youtube_service() -> YouTubeService:
    """
    Get or create YouTube service instance.

    Raises:
        ValueError: If YouTube API key is not configured
    """
    return YouTubeService()
