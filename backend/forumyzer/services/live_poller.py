"""
Live chat polling coordinator.

Keeps at most one poller per video. Each poller runs a tick (one
LiveChatProcessor pass persisted to the video's board), then schedules the
next tick on the event loop after the delay YouTube asked for. A poller
ends when the stream goes offline, when it is stopped, or when a tick
fails; its board is then marked as ended.

State per video_id:

    IDLE ──start──▶ CHECKING ──live──▶ POLLING ──offline / stop / error──▶ ENDED
                       │
                       └──not live──▶ IDLE

Stopping is cooperative. It cancels the pending timer, but a tick that is
already running finishes; it then notices it is no longer current and
re-ends the board instead of rescheduling.
"""

import asyncio
import enum
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger
from forumyzer.db.session import AsyncSessionLocal
from forumyzer.models.message_board import MessageBoard
from forumyzer.repositories.board_repository import BoardRepository
from forumyzer.schemas.live import LiveChatResult, LivePollStatus, LiveTrackingResult
from forumyzer.services.board_service import BoardService
from forumyzer.services.classifier import get_comment_classifier
from forumyzer.services.live_chat import LiveChatProcessor, persist_live_result
from forumyzer.services.youtube import get_youtube_service

logger = get_logger(__name__)


class LivePollState(str, enum.Enum):
    IDLE = "idle"
    CHECKING = "checking"
    POLLING = "polling"
    ENDED = "ended"


@dataclass
class LivePollSession:
    """Book-keeping for one tracked video."""

    video_id: str
    remove_spam: bool = True
    user_id: Optional[str] = None
    state: LivePollState = LivePollState.CHECKING
    board_id: Optional[str] = None
    share_token: Optional[str] = None
    page_token: Optional[str] = None
    polling_interval_millis: int = settings.LIVE_POLL_DEFAULT_INTERVAL_MS
    ticks: int = 0
    last_error: Optional[str] = None
    timer: Optional[asyncio.TimerHandle] = None
    task: Optional[asyncio.Task] = None


class LivePollCoordinator:
    """
    Starts, reschedules and stops live chat pollers.

    Each tick opens its own database session from session_factory, so
    pollers never share a session with a request.

    Usage:
    ------
    coordinator = LivePollCoordinator(processor)
    result = await coordinator.start("jfKfPfyJRdk")
    ...
    await coordinator.stop("jfKfPfyJRdk")
    """

    def __init__(
        self,
        processor: LiveChatProcessor,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        ended_history: int = settings.LIVE_POLL_ENDED_HISTORY
    ):
        self.processor = processor
        self.session_factory = session_factory
        self.ended_history = ended_history
        self._sessions: Dict[str, LivePollSession] = {}
        # Last finished session per video, kept for status(); oldest first
        self._ended: "OrderedDict[str, LivePollSession]" = OrderedDict()

    def is_tracking(self, video_id: str) -> bool:
        return video_id in self._sessions

    def active_video_ids(self) -> List[str]:
        return list(self._sessions)

    async def start(
        self,
        video_id: str,
        remove_spam: bool = True,
        user_id: Optional[str] = None
    ) -> LiveTrackingResult:
        """
        Start tracking the live chat of video_id.

        The first tick runs inline so the caller gets the initial board back.

        Returns:
            LiveTrackingResult; already_running=True if the video was tracked
            already, is_live=False (with the reason) if it is not live

        Raises:
            Whatever the first tick raises (YouTubeAPIError, database errors)
        """
        current = self._sessions.get(video_id)
        if current is not None:
            return LiveTrackingResult(
                video_id=video_id,
                is_live=True,
                already_running=True,
                board_id=current.board_id,
                share_token=current.share_token,
                next_page_token=current.page_token,
                polling_interval_millis=current.polling_interval_millis,
            )

        session = LivePollSession(video_id=video_id, remove_spam=remove_spam, user_id=user_id)
        self._sessions[video_id] = session
        self._ended.pop(video_id, None)

        logger.info("live_poll_starting", video_id=video_id)

        try:
            result = await self.processor.process(video_id, remove_spam=remove_spam)
        except Exception as e:
            self._finish(session, error=str(e))
            raise

        if not result.is_live:
            self._discard(session)
            logger.info("live_poll_not_live", video_id=video_id, reason=result.error)
            return LiveTrackingResult(
                video_id=video_id,
                is_live=False,
                error=result.error,
                scheduled_start_time=result.scheduled_start_time,
                video_title=result.video_title,
                channel_title=result.channel_title,
            )

        try:
            board = await self._persist(session, result)
        except Exception as e:
            self._finish(session, error=str(e))
            raise

        if self._is_current(session):
            session.state = LivePollState.POLLING
            self._schedule(session)
        else:
            # Stopped while the first tick was running
            await self._end_board(board.id)

        logger.info(
            "live_poll_started",
            video_id=video_id,
            board_id=board.id,
            interval_ms=session.polling_interval_millis,
        )

        return LiveTrackingResult(
            video_id=video_id,
            is_live=True,
            board_id=board.id,
            share_token=board.share_token,
            video_title=result.video_title,
            channel_title=result.channel_title,
            threads=result.threads,
            stats=result.stats,
            next_page_token=result.next_page_token,
            polling_interval_millis=result.polling_interval_millis,
            message_count=result.message_count,
            filtered_count=result.filtered_count,
        )

    async def stop(self, video_id: str) -> bool:
        """
        Stop tracking video_id and mark its board as ended.

        Returns:
            False if the video was not being tracked
        """
        session = self._sessions.get(video_id)
        if session is None:
            return False

        await self._end(session)
        logger.info("live_poll_stopped", video_id=video_id, ticks=session.ticks)
        return True

    def status(self, video_id: str) -> LivePollStatus:
        """Current (or last known) poller state for video_id."""
        session = self._sessions.get(video_id) or self._ended.get(video_id)
        if session is None:
            return LivePollStatus(video_id=video_id, state=LivePollState.IDLE.value)

        return LivePollStatus(
            video_id=video_id,
            state=session.state.value,
            board_id=session.board_id,
            page_token=session.page_token,
            polling_interval_millis=session.polling_interval_millis,
            ticks=session.ticks,
            last_error=session.last_error,
        )

    async def shutdown(self) -> None:
        """
        Cancel every pending timer and running tick.

        Boards are left live so the background sweep picks them up again.
        """
        sessions = list(self._sessions.values())
        tasks = []
        for session in sessions:
            if session.timer is not None:
                session.timer.cancel()
                session.timer = None
            if session.task is not None and not session.task.done():
                session.task.cancel()
                tasks.append(session.task)

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._sessions.clear()
        logger.info("live_poll_coordinator_shutdown", sessions=len(sessions))

    # ========================================
    # Ticks
    # ========================================

    def _schedule(self, session: LivePollSession) -> None:
        loop = asyncio.get_running_loop()
        session.timer = loop.call_later(
            session.polling_interval_millis / 1000,
            self._launch_tick,
            session,
        )

    def _launch_tick(self, session: LivePollSession) -> None:
        session.timer = None
        if not self._is_current(session):
            return
        session.task = asyncio.get_running_loop().create_task(self._tick(session))

    async def _tick(self, session: LivePollSession) -> None:
        """One scheduled pass: process from the cursor, persist, reschedule."""
        try:
            result = await self.processor.process(
                session.video_id,
                page_token=session.page_token,
                remove_spam=session.remove_spam,
            )

            if not result.is_live:
                logger.info("live_poll_stream_ended", video_id=session.video_id, reason=result.error)
                await self._end(session)
                return

            board = await self._persist(session, result)
        except Exception as e:
            logger.error(
                "live_poll_tick_failed",
                video_id=session.video_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._end(session, error=str(e))
            return
        finally:
            session.task = None

        if not self._is_current(session):
            # Stopped mid-tick; the persist above set the board live again
            await self._end_board(board.id)
            return

        self._schedule(session)

    async def _persist(self, session: LivePollSession, result: LiveChatResult) -> MessageBoard:
        async with self.session_factory() as db:
            board_service = BoardService(BoardRepository(db))
            board = await persist_live_result(
                board_service,
                session.video_id,
                result,
                user_id=session.user_id,
            )

        session.board_id = board.id
        session.share_token = board.share_token
        session.page_token = result.next_page_token
        session.polling_interval_millis = result.polling_interval_millis
        session.ticks += 1
        return board

    # ========================================
    # Ending
    # ========================================

    def _is_current(self, session: LivePollSession) -> bool:
        return self._sessions.get(session.video_id) is session

    def _discard(self, session: LivePollSession) -> None:
        if self._is_current(session):
            del self._sessions[session.video_id]

    def _finish(self, session: LivePollSession, error: Optional[str] = None) -> None:
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
        session.state = LivePollState.ENDED
        if error:
            session.last_error = error
        self._discard(session)
        self._ended.pop(session.video_id, None)
        self._ended[session.video_id] = session
        while len(self._ended) > self.ended_history:
            self._ended.popitem(last=False)

    async def _end(self, session: LivePollSession, error: Optional[str] = None) -> None:
        self._finish(session, error=error)
        if session.board_id:
            await self._end_board(session.board_id)

    async def _end_board(self, board_id: str) -> None:
        try:
            async with self.session_factory() as db:
                await BoardService(BoardRepository(db)).mark_as_ended(board_id)
        except Exception as e:
            # Left live; the sweep task checks it again once it goes stale
            logger.error("live_poll_end_board_failed", board_id=board_id, error=str(e))


# ========================================
# Helper Functions
# ========================================

_coordinator: Optional[LivePollCoordinator] = None


def get_live_poll_coordinator() -> LivePollCoordinator:
    """
    Get or create the process-wide coordinator.

    Raises:
        ValueError: If YouTube API key is not configured
    """
    global _coordinator

    if _coordinator is None:
        processor = LiveChatProcessor(get_youtube_service(), get_comment_classifier())
        _coordinator = LivePollCoordinator(processor)

    return _coordinator


def tracked_video_ids() -> List[str]:
    """Videos the process-wide coordinator is polling; empty if it was never created."""
    if _coordinator is None:
        return []
    return _coordinator.active_video_ids()


async def shutdown_live_poll_coordinator() -> None:
    """Stop all pollers of the process-wide coordinator, if it was ever created."""
    global _coordinator

    if _coordinator is not None:
        await _coordinator.shutdown()
        _coordinator = None
