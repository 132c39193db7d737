"""
Message board API endpoints.

Boards are public: they can be listed, read by id, by video or by share
token without authentication.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from forumyzer.api.deps import get_board_service
from forumyzer.models.message_board import MessageBoard
from forumyzer.schemas.boards import (
    BoardCreateRequest,
    BoardList,
    BoardResponse,
    BoardSummary,
    MessageResponse,
)
from forumyzer.services.board_service import BoardService

router = APIRouter(prefix="/boards", tags=["Boards"])


def _board_or_404(board: Optional[MessageBoard]) -> MessageBoard:
    if board is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Board not found"
        )
    return board


@router.post(
    "",
    response_model=BoardResponse,
    summary="Create or update a board",
    description=(
        "Save classified threads for a video. If the video already has a board "
        "the threads are merged into it."
    ),
)
async def create_or_update_board(
    request: BoardCreateRequest,
    boards: BoardService = Depends(get_board_service)
):
    board = await boards.create_or_update(request, user_id=request.user_id)
    return board


@router.get(
    "",
    response_model=BoardList,
    summary="List boards",
    description="Boards of a user, or every board when no user_id is given",
)
async def list_boards(
    user_id: Optional[str] = Query(None, description="Owner id"),
    boards: BoardService = Depends(get_board_service)
):
    items = await boards.find_by_user(user_id)
    return BoardList(
        boards=[BoardSummary.model_validate(board) for board in items],
        total=len(items)
    )


@router.get(
    "/video/{video_id}",
    response_model=BoardResponse,
    summary="Get the board of a video",
    responses={404: {"description": "Board not found"}},
)
async def get_board_by_video(
    video_id: str,
    boards: BoardService = Depends(get_board_service)
):
    return _board_or_404(await boards.find_by_video_id(video_id))


@router.get(
    "/share/{share_token}",
    response_model=BoardResponse,
    summary="Get a shared board",
    responses={404: {"description": "Board not found"}},
)
async def get_shared_board(
    share_token: str,
    boards: BoardService = Depends(get_board_service)
):
    return _board_or_404(await boards.find_by_share_token(share_token))


@router.get(
    "/{board_id}",
    response_model=BoardResponse,
    summary="Get a board",
    responses={404: {"description": "Board not found"}},
)
async def get_board(
    board_id: str,
    boards: BoardService = Depends(get_board_service)
):
    return _board_or_404(await boards.find_by_id(board_id))


@router.post(
    "/{board_id}/end",
    response_model=BoardResponse,
    summary="Mark a live board as ended",
    responses={404: {"description": "Board not found"}},
)
async def end_board(
    board_id: str,
    boards: BoardService = Depends(get_board_service)
):
    return _board_or_404(await boards.mark_as_ended(board_id))


@router.delete(
    "/{board_id}",
    response_model=MessageResponse,
    summary="Delete a board",
    responses={404: {"description": "Board not found"}},
)
async def delete_board(
    board_id: str,
    boards: BoardService = Depends(get_board_service)
):
    if not await boards.delete_board(board_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Board not found"
        )
    return MessageResponse(message=f"Board {board_id} deleted")
