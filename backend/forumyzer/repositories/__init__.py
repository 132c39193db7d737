"""Data access repositories."""

from forumyzer.repositories.board_repository import BoardRepository

__all__ = [
    "BoardRepository",
]
