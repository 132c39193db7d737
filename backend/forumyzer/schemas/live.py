"""
Pydantic schemas for live stream status, live chat pages and live tracking.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from forumyzer.schemas.comments import BoardStats, Comment


# ========================================
# Source Schemas (YouTube adapter output)
# ========================================

class LiveStatus(BaseModel):
    """Live broadcast state of a video."""

    is_live: bool = False
    live_chat_id: Optional[str] = None
    video_title: Optional[str] = None
    channel_title: Optional[str] = None
    is_upcoming: bool = False
    scheduled_start_time: Optional[str] = None


class ChatMessage(BaseModel):
    """One live chat message as returned by liveChatMessages.list."""

    id: str
    author: str = ""
    text: str = ""
    published_at: Optional[str] = None
    type: Optional[str] = None
    is_chat_owner: bool = False
    is_chat_moderator: bool = False
    is_chat_sponsor: bool = False
    profile_image_url: Optional[str] = None


class LiveChatPage(BaseModel):
    """A page of live chat messages plus the continuation cursor."""

    messages: List[ChatMessage] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    polling_interval_millis: int = 5000
    # Set by YouTube once the broadcast has gone offline
    offline_at: Optional[str] = None


# ========================================
# Pipeline Results
# ========================================

class LiveChatResult(BaseModel):
    """Outcome of one fetch → classify → filter pass over a live chat."""

    is_live: bool
    error: Optional[str] = None
    scheduled_start_time: Optional[str] = None

    live_chat_id: Optional[str] = None
    video_title: Optional[str] = None
    channel_title: Optional[str] = None
    threads: List[Comment] = Field(default_factory=list)
    stats: Optional[BoardStats] = None
    next_page_token: Optional[str] = None
    polling_interval_millis: int = 5000
    # Messages fetched, and how many of them the filter dropped
    message_count: int = 0
    filtered_count: int = 0


class LiveTrackingResult(BaseModel):
    """Returned to whoever asked to start tracking a live video."""

    video_id: str
    is_live: bool
    already_running: bool = False
    error: Optional[str] = None
    scheduled_start_time: Optional[str] = None

    board_id: Optional[str] = None
    share_token: Optional[str] = None
    video_title: Optional[str] = None
    channel_title: Optional[str] = None
    threads: List[Comment] = Field(default_factory=list)
    stats: Optional[BoardStats] = None
    next_page_token: Optional[str] = None
    polling_interval_millis: Optional[int] = None
    message_count: int = 0
    filtered_count: int = 0


class LivePollStatus(BaseModel):
    """Current coordinator state for one video."""

    video_id: str
    state: str
    board_id: Optional[str] = None
    page_token: Optional[str] = None
    polling_interval_millis: Optional[int] = None
    ticks: int = 0
    last_error: Optional[str] = None


# ========================================
# Request Schemas
# ========================================

class LiveStartRequest(BaseModel):
    """Request schema for starting live chat tracking."""

    video_id: str = Field(
        ...,
        description="YouTube video ID of the live broadcast",
        min_length=1,
        max_length=100,
        examples=["jfKfPfyJRdk"]
    )
    remove_spam: bool = Field(True, description="Drop spam/toxic messages before saving")
    user_id: Optional[str] = Field(None, description="Owner id from the identity provider")

    @field_validator('video_id')
    @classmethod
    def validate_video_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("video_id cannot be empty")
        return v


class LiveStopRequest(BaseModel):
    """Request schema for stopping live chat tracking."""

    video_id: str = Field(..., min_length=1, max_length=100)
