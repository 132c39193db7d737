"""
Message board repository.

The repository is the only place that talks to the database about boards.
Services work against it so the storage engine can be swapped (or mocked)
without touching board logic.

Nothing is written until `flush()` is called: every mutation in the board
service is followed by an explicit flush, which commits the session.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forumyzer.core.logging import get_logger
from forumyzer.models.message_board import MessageBoard

logger = get_logger(__name__)


class BoardRepository:
    """Persistence port for MessageBoard rows, backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, board: MessageBoard) -> MessageBoard:
        self.session.add(board)
        return board

    async def get_by_id(self, board_id: str) -> Optional[MessageBoard]:
        return await self.session.get(MessageBoard, board_id)

    async def get_by_video_id(self, video_id: str) -> Optional[MessageBoard]:
        result = await self.session.execute(
            select(MessageBoard).where(MessageBoard.video_id == video_id)
        )
        return result.scalar_one_or_none()

    async def get_by_share_token(self, share_token: str) -> Optional[MessageBoard]:
        result = await self.session.execute(
            select(MessageBoard).where(MessageBoard.share_token == share_token)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[MessageBoard]:
        result = await self.session.execute(
            select(MessageBoard).order_by(MessageBoard.created_at)
        )
        return list(result.scalars().all())

    async def list_by_user(self, user_id: str) -> List[MessageBoard]:
        result = await self.session.execute(
            select(MessageBoard)
            .where(MessageBoard.user_id == user_id)
            .order_by(MessageBoard.created_at)
        )
        return list(result.scalars().all())

    async def list_live(self) -> List[MessageBoard]:
        result = await self.session.execute(
            select(MessageBoard)
            .where(MessageBoard.is_live.is_(True))
            .order_by(MessageBoard.created_at)
        )
        return list(result.scalars().all())

    async def delete(self, board: MessageBoard) -> None:
        await self.session.delete(board)

    async def flush(self) -> None:
        """
        Persist pending changes.

        A failed commit is rolled back and re-raised; callers never see a
        silently lost write.
        """
        try:
            await self.session.commit()
        except Exception as e:
            logger.error(
                "board_flush_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.session.rollback()
            raise
