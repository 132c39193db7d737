"""
Pydantic schemas for message board endpoints.

These schemas define the request/response structures for board and
forumize operations.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forumyzer.schemas.comments import BoardStats, Comment


# ========================================
# Service Input
# ========================================

class BoardUpsert(BaseModel):
    """Data for creating a board or merging new threads into one."""

    video_id: str = Field(..., min_length=1, max_length=100)
    video_title: Optional[str] = Field(None, max_length=500)
    video_channel: Optional[str] = Field(None, max_length=255)
    is_live: bool = False
    live_chat_id: Optional[str] = None
    threads: List[Comment] = Field(default_factory=list)
    # Replaces the board's stats as given; None means "recompute from the merged threads"
    stats: Optional[BoardStats] = None
    # Comments dropped from this batch, added to the board's total when stats are recomputed
    removed_comments: int = Field(0, ge=0)

    @field_validator('video_id')
    @classmethod
    def validate_video_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("video_id cannot be empty")
        return v


class BoardCreateRequest(BoardUpsert):
    """Request schema for POST /boards."""

    user_id: Optional[str] = Field(None, description="Owner id from the identity provider")


class ForumizeRequest(BaseModel):
    """Request schema for forumizing a (non-live) video's comments."""

    video_id: str = Field(
        ...,
        description="YouTube video ID",
        min_length=1,
        max_length=100,
        examples=["dQw4w9WgXcQ"]
    )
    max_results: int = Field(50, ge=1, le=100, description="Comment threads to fetch")
    use_ai: bool = Field(True, description="Use the AI classifier when configured")
    remove_spam: bool = Field(True, description="Drop spam/toxic comments")
    save: bool = Field(True, description="Persist the result as a message board")
    video_title: Optional[str] = Field(None, max_length=500)
    video_channel: Optional[str] = Field(None, max_length=255)
    user_id: Optional[str] = None


# ========================================
# Response Schemas
# ========================================

class BoardResponse(BaseModel):
    """Full message board, as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    video_id: str
    video_title: Optional[str] = None
    video_channel: Optional[str] = None
    is_live: bool
    live_chat_id: Optional[str] = None
    threads: List[Comment] = Field(default_factory=list)
    stats: Optional[BoardStats] = None
    created_at: datetime
    updated_at: datetime
    ended_at: Optional[datetime] = None
    user_id: Optional[str] = None
    is_public: bool = True
    share_token: str
    message_count: int = 0
    last_page_token: Optional[str] = None
    polling_interval_millis: int = 5000


class BoardSummary(BaseModel):
    """Board listing entry (threads omitted)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    video_id: str
    video_title: Optional[str] = None
    video_channel: Optional[str] = None
    is_live: bool
    share_token: str
    message_count: int = 0
    stats: Optional[BoardStats] = None
    created_at: datetime
    updated_at: datetime
    ended_at: Optional[datetime] = None


class BoardList(BaseModel):
    """List of boards."""

    boards: List[BoardSummary]
    total: int


class ForumizeResponse(BaseModel):
    """Classified threads for a video, plus the board they were saved to."""

    video_id: str
    threads: List[Comment]
    stats: BoardStats
    use_ai: bool
    spam_removed: bool
    board_id: Optional[str] = None
    share_token: Optional[str] = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True
