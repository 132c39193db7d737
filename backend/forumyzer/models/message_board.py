"""
Message Board Model

A message board is the persisted, shareable forum view of one video's
classified comment threads.

Database Tables:
----------------
- message_boards: one row per YouTube video

Threads and stats are stored as JSON documents: they are always read and
written as a whole (merge happens in Python), so normalising comments into
their own table would only add joins.

Lifecycle:
----------
created on first classification → updated on every merge (live poll or
reprocess) → soft-ended (is_live=False + ended_at) when the stream ends →
hard-deleted on explicit delete.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from forumyzer.db.base import BaseModel, JSONType, String36, String100, String255, String500, generate_uuid


class MessageBoard(BaseModel):
    """
    Aggregated forum state for one YouTube video.

    Invariants:
    -----------
    - video_id is unique: boards are created-or-updated, never duplicated
    - threads never holds two comments with the same id
    - message_count never decreases; it accumulates the size of every
      merged batch, so it can exceed len(threads)
    - share_token alone grants read access to the board
    """

    __tablename__ = "message_boards"

    video_id: Mapped[str] = mapped_column(
        String100,
        unique=True,
        index=True,
        nullable=False,
        comment="YouTube video ID (one board per video)"
    )

    video_title: Mapped[Optional[str]] = mapped_column(
        String500,
        nullable=True
    )

    video_channel: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True
    )

    is_live: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
        comment="True while the live chat is being tracked"
    )

    live_chat_id: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True
    )

    threads: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
        comment="Classified comment threads, newest first"
    )

    stats: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Category counts and percentages"
    )

    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the live stream ended (UTC)"
    )

    user_id: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True,
        index=True,
        comment="Owner id issued by the external identity provider"
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    share_token: Mapped[str] = mapped_column(
        String36,
        unique=True,
        index=True,
        default=generate_uuid,
        nullable=False,
        comment="Unauthenticated read capability"
    )

    message_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Running total of merged messages (never decreases)"
    )

    last_page_token: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True,
        comment="Live chat continuation cursor"
    )

    polling_interval_millis: Mapped[int] = mapped_column(
        Integer,
        default=5000,
        nullable=False,
        comment="Poll delay advised by the live chat API"
    )

    def __repr__(self) -> str:
        return f"MessageBoard(id={self.id}, video_id={self.video_id}, is_live={self.is_live})"
