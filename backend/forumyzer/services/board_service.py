"""
Message board aggregation.

BoardService is the single writer for message boards: every mutation goes
through it and is followed by an explicit repository flush. Boards are keyed
by video_id, so saving classified threads for a video either creates its
board or merges into the existing one.

Concurrent updates to the same video (e.g. a manual reprocess while the
live poller runs) are not locked against each other; the later write wins.
"""

from typing import List, Optional

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger
from forumyzer.db.base import utcnow
from forumyzer.models.message_board import MessageBoard
from forumyzer.repositories.board_repository import BoardRepository
from forumyzer.schemas.boards import BoardUpsert
from forumyzer.schemas.comments import BoardStats, Comment
from forumyzer.services.board_stats import compute_board_stats
from forumyzer.services.thread_merge import merge_threads

logger = get_logger(__name__)


def board_threads(board: MessageBoard) -> List[Comment]:
    """Stored threads of a board as Comment models."""
    return [Comment.model_validate(thread) for thread in board.threads or []]


def board_stats(board: MessageBoard) -> Optional[BoardStats]:
    """Stored stats of a board, if any."""
    if not board.stats:
        return None
    return BoardStats.model_validate(board.stats)


def _dump_threads(threads: List[Comment]) -> list:
    return [thread.model_dump(mode="json") for thread in threads]


def _stats_for(data: BoardUpsert, threads: List[Comment], removed: int) -> dict:
    stats = data.stats or compute_board_stats(threads, removed_comments=removed)
    return stats.model_dump(mode="json")


class BoardService:
    """
    Owns the video_id → MessageBoard mapping.

    Usage:
    ------
    service = BoardService(BoardRepository(session))
    board = await service.create_or_update(BoardUpsert(video_id="abc", threads=[...]))
    """

    def __init__(self, repository: BoardRepository):
        self.repository = repository

    async def create_or_update(
        self,
        data: BoardUpsert,
        user_id: Optional[str] = None
    ) -> MessageBoard:
        """
        Create the board for data.video_id, or merge into the existing one.

        New board:
            threads sorted newest first, message_count = len(data.threads),
            fresh id and share_token.
        Existing board:
            threads merged (existing ids win), is_live / live_chat_id replaced,
            updated_at bumped, and len(data.threads) ADDED to message_count.
            The count grows by the size of the supplied batch, not by the
            number of threads that were actually new.

        Stats supplied in data.stats replace the board's stats as given.
        Without them, stats are recomputed from the board's resulting threads
        and data.removed_comments is added to the board's running total.

        Args:
            data: Video metadata plus the classified threads to save
            user_id: Owner, only used when the board is created

        Returns:
            The created or updated board (already flushed)
        """
        existing = await self.repository.get_by_video_id(data.video_id)

        if existing:
            merged = merge_threads(board_threads(existing), data.threads)
            previous = board_stats(existing)
            removed = data.removed_comments + (previous.removed_comments if previous else 0)

            existing.threads = _dump_threads(merged)
            existing.stats = _stats_for(data, merged, removed)
            existing.updated_at = utcnow()
            existing.is_live = data.is_live
            existing.live_chat_id = data.live_chat_id
            existing.message_count = (existing.message_count or 0) + len(data.threads)
            if not existing.video_title and data.video_title:
                existing.video_title = data.video_title
            if not existing.video_channel and data.video_channel:
                existing.video_channel = data.video_channel

            await self.repository.flush()

            logger.info(
                "board_updated",
                board_id=existing.id,
                video_id=existing.video_id,
                incoming=len(data.threads),
                threads=len(merged),
                message_count=existing.message_count,
            )
            return existing

        threads = merge_threads([], data.threads)
        now = utcnow()
        board = MessageBoard(
            video_id=data.video_id,
            video_title=data.video_title,
            video_channel=data.video_channel,
            is_live=data.is_live,
            live_chat_id=data.live_chat_id,
            threads=_dump_threads(threads),
            stats=_stats_for(data, threads, data.removed_comments),
            created_at=now,
            updated_at=now,
            user_id=user_id,
            is_public=True,
            message_count=len(data.threads),
            last_page_token=None,
            polling_interval_millis=settings.LIVE_POLL_DEFAULT_INTERVAL_MS,
        )

        await self.repository.add(board)
        await self.repository.flush()

        logger.info(
            "board_created",
            board_id=board.id,
            video_id=board.video_id,
            threads=len(threads),
            is_live=board.is_live,
        )
        return board

    async def find_by_video_id(self, video_id: str) -> Optional[MessageBoard]:
        return await self.repository.get_by_video_id(video_id)

    async def find_by_id(self, board_id: str) -> Optional[MessageBoard]:
        return await self.repository.get_by_id(board_id)

    async def find_by_share_token(self, share_token: str) -> Optional[MessageBoard]:
        return await self.repository.get_by_share_token(share_token)

    async def find_by_user(self, user_id: Optional[str] = None) -> List[MessageBoard]:
        """
        Boards owned by user_id.

        Without a user_id every board is returned. This open listing is the
        demo behaviour the extension and web app rely on.
        """
        if not user_id:
            return await self.repository.list_all()
        return await self.repository.list_by_user(user_id)

    async def update_page_token(
        self,
        board_id: str,
        page_token: Optional[str],
        polling_interval_millis: Optional[int] = None
    ) -> Optional[MessageBoard]:
        """Store the live chat cursor (and advised poll delay). None if the board is gone."""
        board = await self.repository.get_by_id(board_id)
        if board is None:
            return None

        board.last_page_token = page_token
        if polling_interval_millis:
            board.polling_interval_millis = polling_interval_millis
        board.updated_at = utcnow()

        await self.repository.flush()
        return board

    async def mark_as_ended(self, board_id: str) -> Optional[MessageBoard]:
        """Soft-end a live board. None if the board is gone."""
        board = await self.repository.get_by_id(board_id)
        if board is None:
            return None

        board.is_live = False
        board.ended_at = utcnow()

        await self.repository.flush()

        logger.info("board_ended", board_id=board.id, video_id=board.video_id)
        return board

    async def get_active_live_boards(self) -> List[MessageBoard]:
        """Boards whose live chat is still being tracked."""
        return await self.repository.list_live()

    async def delete_board(self, board_id: str) -> bool:
        """Hard-delete a board. Returns whether anything was deleted."""
        board = await self.repository.get_by_id(board_id)
        if board is None:
            return False

        await self.repository.delete(board)
        await self.repository.flush()

        logger.info("board_deleted", board_id=board_id)
        return True
