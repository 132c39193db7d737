"""
Unit tests for YouTube service.

These tests mock the YouTube API to avoid using quota during testing.
"""

import json

import pytest
from unittest.mock import Mock, patch, MagicMock

from googleapiclient.errors import HttpError

from forumyzer.services.youtube import (
    YouTubeService,
    YouTubeAPIError,
    YouTubeQuotaExceededError,
    YouTubeVideoNotFoundError,
)


def _http_error(status: int, message: str = "error", reason: str = "backendError") -> HttpError:
    """HttpError with a JSON body shaped like the real API errors."""
    content = json.dumps({
        "error": {"code": status, "message": message, "errors": [{"reason": reason}]}
    }).encode()
    return HttpError(resp=Mock(status=status, reason="error"), content=content)


class TestYouTubeService:
    """Test suite for YouTubeService class."""

    @pytest.fixture
    def mock_youtube_client(self):
        """Mock YouTube API client."""
        with patch('forumyzer.services.youtube.build') as mock_build:
            mock_client = MagicMock()
            mock_build.return_value = mock_client
            yield mock_client

    @pytest.fixture
    def youtube_service(self, mock_youtube_client):
        """Create YouTubeService instance with mocked client."""
        service = YouTubeService(api_key='test_api_key')
        service._youtube = mock_youtube_client
        return service

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            YouTubeService(api_key=None)

    # ========================================
    # Comment Threads Tests
    # ========================================

    @pytest.mark.asyncio
    async def test_fetch_comment_threads(self, youtube_service, mock_youtube_client):
        """Threads are parsed with their replies."""
        mock_youtube_client.commentThreads().list().execute.return_value = {
            'items': [
                {
                    'snippet': {
                        'topLevelComment': {
                            'id': 'top1',
                            'snippet': {
                                'authorDisplayName': 'Ann',
                                'textOriginal': 'Great talk',
                                'publishedAt': '2024-05-01T10:00:00Z',
                                'likeCount': 4,
                            },
                        },
                    },
                    'replies': {
                        'comments': [{
                            'id': 'top1.r1',
                            'snippet': {
                                'authorDisplayName': 'Bob',
                                'textOriginal': 'Agreed',
                                'publishedAt': '2024-05-01T11:00:00Z',
                                'likeCount': 0,
                            },
                        }],
                    },
                },
                {
                    'snippet': {
                        'topLevelComment': {
                            'id': 'top2',
                            'snippet': {
                                'authorDisplayName': 'Cid',
                                'textDisplay': 'No replies here',
                                'publishedAt': '2024-05-01T12:00:00Z',
                            },
                        },
                    },
                },
            ]
        }

        threads = await youtube_service.fetch_comment_threads('dQw4w9WgXcQ', max_results=20)

        assert [t.id for t in threads] == ['top1', 'top2']
        assert threads[0].author == 'Ann'
        assert threads[0].like_count == 4
        assert [r.id for r in threads[0].replies] == ['top1.r1']
        assert threads[1].text == 'No replies here'
        assert threads[1].replies == []
        assert threads[0].category is None

    @pytest.mark.asyncio
    async def test_fetch_comment_threads_caps_max_results(self, youtube_service, mock_youtube_client):
        mock_youtube_client.commentThreads().list().execute.return_value = {'items': []}

        await youtube_service.fetch_comment_threads('dQw4w9WgXcQ', max_results=500)

        kwargs = mock_youtube_client.commentThreads().list.call_args.kwargs
        assert kwargs['maxResults'] == 100
        assert kwargs['part'] == 'snippet,replies'

    @pytest.mark.asyncio
    async def test_comment_threads_video_not_found(self, youtube_service, mock_youtube_client):
        mock_youtube_client.commentThreads().list().execute.side_effect = _http_error(404)

        with pytest.raises(YouTubeVideoNotFoundError):
            await youtube_service.fetch_comment_threads('missing0000')

    @pytest.mark.asyncio
    async def test_comments_disabled_is_api_error(self, youtube_service, mock_youtube_client):
        mock_youtube_client.commentThreads().list().execute.side_effect = _http_error(
            403, 'The video has disabled comments.', 'commentsDisabled'
        )

        with pytest.raises(YouTubeAPIError) as exc_info:
            await youtube_service.fetch_comment_threads('dQw4w9WgXcQ')

        assert not isinstance(exc_info.value, YouTubeQuotaExceededError)

    @pytest.mark.asyncio
    async def test_quota_exceeded_error(self, youtube_service, mock_youtube_client):
        """Test quota exceeded error handling."""
        mock_youtube_client.commentThreads().list().execute.side_effect = _http_error(
            403, 'You have exceeded your quota.', 'quotaExceeded'
        )

        with pytest.raises(YouTubeQuotaExceededError):
            await youtube_service.fetch_comment_threads('dQw4w9WgXcQ')

    # ========================================
    # Live Streaming Tests
    # ========================================

    @pytest.mark.asyncio
    async def test_check_live_status_live(self, youtube_service, mock_youtube_client):
        mock_youtube_client.videos().list().execute.return_value = {
            'items': [{
                'id': 'jfKfPfyJRdk',
                'snippet': {
                    'title': 'lofi radio',
                    'channelTitle': 'Lofi Girl',
                    'liveBroadcastContent': 'live',
                },
                'liveStreamingDetails': {'activeLiveChatId': 'chat-123'},
            }]
        }

        status = await youtube_service.check_live_status('jfKfPfyJRdk')

        assert status.is_live is True
        assert status.live_chat_id == 'chat-123'
        assert status.video_title == 'lofi radio'
        assert status.channel_title == 'Lofi Girl'
        assert status.is_upcoming is False

    @pytest.mark.asyncio
    async def test_check_live_status_upcoming(self, youtube_service, mock_youtube_client):
        mock_youtube_client.videos().list().execute.return_value = {
            'items': [{
                'id': 'abc',
                'snippet': {'liveBroadcastContent': 'upcoming'},
                'liveStreamingDetails': {'scheduledStartTime': '2030-01-01T00:00:00Z'},
            }]
        }

        status = await youtube_service.check_live_status('abc')

        assert status.is_live is False
        assert status.is_upcoming is True
        assert status.scheduled_start_time == '2030-01-01T00:00:00Z'

    @pytest.mark.asyncio
    async def test_check_live_status_unknown_video(self, youtube_service, mock_youtube_client):
        mock_youtube_client.videos().list().execute.return_value = {'items': []}

        status = await youtube_service.check_live_status('missing')

        assert status.is_live is False
        assert status.live_chat_id is None

    @pytest.mark.asyncio
    async def test_fetch_live_chat_page(self, youtube_service, mock_youtube_client):
        mock_youtube_client.liveChatMessages().list().execute.return_value = {
            'nextPageToken': 'next-1',
            'pollingIntervalMillis': 3000,
            'items': [
                {
                    'id': 'm1',
                    'snippet': {
                        'type': 'textMessageEvent',
                        'displayMessage': 'hello chat',
                        'publishedAt': '2024-05-01T10:00:00Z',
                    },
                    'authorDetails': {
                        'displayName': 'Mod',
                        'isChatModerator': True,
                        'profileImageUrl': 'https://example.com/a.jpg',
                    },
                },
                {
                    'id': 'm2',
                    'snippet': {
                        'type': 'textMessageEvent',
                        'textMessageDetails': {'messageText': 'from details'},
                    },
                    'authorDetails': {'displayName': 'Viewer'},
                },
            ],
        }

        page = await youtube_service.fetch_live_chat_page('chat-123', page_token='prev')

        kwargs = mock_youtube_client.liveChatMessages().list.call_args.kwargs
        assert kwargs['pageToken'] == 'prev'
        assert kwargs['liveChatId'] == 'chat-123'
        assert page.next_page_token == 'next-1'
        assert page.polling_interval_millis == 3000
        assert page.offline_at is None
        assert page.messages[0].text == 'hello chat'
        assert page.messages[0].is_chat_moderator is True
        assert page.messages[1].text == 'from details'

    @pytest.mark.asyncio
    async def test_fetch_live_chat_page_defaults(self, youtube_service, mock_youtube_client):
        mock_youtube_client.liveChatMessages().list().execute.return_value = {
            'items': [],
            'offlineAt': '2024-05-01T12:00:00Z',
        }

        page = await youtube_service.fetch_live_chat_page('chat-123')

        kwargs = mock_youtube_client.liveChatMessages().list.call_args.kwargs
        assert 'pageToken' not in kwargs
        assert page.polling_interval_millis == 5000
        assert page.offline_at == '2024-05-01T12:00:00Z'

    # ========================================
    # Video Details Tests
    # ========================================

    @pytest.mark.asyncio
    async def test_get_video_details(self, youtube_service, mock_youtube_client):
        mock_youtube_client.videos().list().execute.return_value = {
            'items': [{
                'id': 'dQw4w9WgXcQ',
                'snippet': {'title': 'Never Gonna', 'channelId': 'UC1', 'channelTitle': 'Rick'},
            }]
        }

        details = await youtube_service.get_video_details('dQw4w9WgXcQ')

        assert details['title'] == 'Never Gonna'
        assert details['channel_title'] == 'Rick'

    @pytest.mark.asyncio
    async def test_get_video_details_not_found(self, youtube_service, mock_youtube_client):
        mock_youtube_client.videos().list().execute.return_value = {'items': []}

        with pytest.raises(YouTubeVideoNotFoundError):
            await youtube_service.get_video_details('missing')

    # ========================================
    # Utility Tests
    # ========================================

    @pytest.mark.parametrize("url, expected", [
        ('https://www.youtube.com/watch?v=dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
        ('https://youtu.be/dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
        ('https://www.youtube.com/embed/dQw4w9WgXcQ', 'dQw4w9WgXcQ'),
        ('https://www.youtube.com/live/jfKfPfyJRdk?si=x', 'jfKfPfyJRdk'),
        ('https://example.com/watch?v=nope', None),
    ])
    def test_extract_video_id_from_url(self, url, expected):
        assert YouTubeService.extract_video_id_from_url(url) == expected

    def test_validate_video_id(self):
        assert YouTubeService.validate_video_id('dQw4w9WgXcQ') is True
        assert YouTubeService.validate_video_id('short') is False
        assert YouTubeService.validate_video_id('has space!!') is False

    def test_normalize_video_id(self):
        assert YouTubeService.normalize_video_id(' dQw4w9WgXcQ ') == 'dQw4w9WgXcQ'
        assert YouTubeService.normalize_video_id('https://youtu.be/dQw4w9WgXcQ') == 'dQw4w9WgXcQ'
