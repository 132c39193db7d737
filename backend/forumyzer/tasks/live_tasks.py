"""
Celery tasks for live chat boards.

The API process polls the live chats it was asked to track. Boards whose
poller is gone (API restart, crash, a stopped worker) would otherwise stay
"live" forever, so a periodic sweep picks up every live board that has not
been refreshed for a while and runs one poll for it: boards whose stream has
ended are marked as ended, the others get their new messages merged in.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger
from forumyzer.db.base import utcnow
from forumyzer.db.session import AsyncSessionLocal, engine
from forumyzer.repositories.board_repository import BoardRepository
from forumyzer.services.board_service import BoardService
from forumyzer.services.classifier import get_comment_classifier
from forumyzer.services.live_chat import LiveChatProcessor, persist_live_result
from forumyzer.services.youtube import get_youtube_service
from forumyzer.workers.celery_app import celery_app

logger = get_logger(__name__)


# ========================================
# Helper Functions
# ========================================

def run_async(coro):
    """
    Run async coroutine in Celery task context (one event loop per run).

    Pooled connections belong to the loop that opened them, so the engine
    pool is emptied before this run's loop closes.
    """
    async def _run():
        try:
            return await coro
        finally:
            await engine.dispose()

    return asyncio.run(_run())


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def sweep_stale_live_boards(
    processor: Optional[LiveChatProcessor] = None,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    stale_after_seconds: Optional[int] = None
) -> dict:
    """
    Run one poll for every live board not refreshed in stale_after_seconds.

    A failure on one board is logged and counted; the sweep goes on with
    the next one.

    Returns:
        {'checked': int, 'refreshed': int, 'ended': int, 'failed': int}
    """
    if processor is None:
        processor = LiveChatProcessor(get_youtube_service(), get_comment_classifier())

    if stale_after_seconds is None:
        stale_after_seconds = settings.LIVE_BOARD_STALE_SECONDS
    cutoff = utcnow() - timedelta(seconds=stale_after_seconds)

    async with session_factory() as db:
        boards = await BoardService(BoardRepository(db)).get_active_live_boards()
        stale = [
            (board.id, board.video_id, board.last_page_token)
            for board in boards
            if _as_utc(board.updated_at) < cutoff
        ]

    logger.info("live_sweep_started", live_boards=len(boards), stale=len(stale))

    summary = {'checked': len(stale), 'refreshed': 0, 'ended': 0, 'failed': 0}

    for board_id, video_id, page_token in stale:
        try:
            result = await processor.process(video_id, page_token=page_token)

            async with session_factory() as db:
                board_service = BoardService(BoardRepository(db))
                if result.is_live:
                    await persist_live_result(board_service, video_id, result)
                    summary['refreshed'] += 1
                else:
                    await board_service.mark_as_ended(board_id)
                    summary['ended'] += 1
        except Exception as e:
            summary['failed'] += 1
            logger.error(
                "live_sweep_board_failed",
                board_id=board_id,
                video_id=video_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    logger.info("live_sweep_finished", **summary)
    return summary


# ========================================
# Tasks
# ========================================

@celery_app.task(name='live.sweep_active_boards', bind=True)
def sweep_active_boards(self) -> dict:
    """
    Periodic task resuming live boards that nobody is polling.

    Scheduled to run every minute via Celery Beat.

    Returns:
        Dictionary with task results
    """
    try:
        summary = run_async(sweep_stale_live_boards())
    except ValueError as e:
        # YouTube API key not configured
        logger.error("live_sweep_skipped", error=str(e))
        return {'success': False, 'error': str(e)}

    return {'success': True, **summary}
