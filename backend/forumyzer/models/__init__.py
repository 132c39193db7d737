"""
Database Models

Import models from this module to ensure they're registered with SQLAlchemy:

    from forumyzer.models import MessageBoard

This ensures that `Base.metadata.create_all` sees every table.
"""

from forumyzer.models.message_board import MessageBoard

__all__ = [
    "MessageBoard",
]
