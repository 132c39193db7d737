"""
Pydantic schemas for comments, categories and board statistics.

A `Comment` is a recursive tree node: top-level comments carry their
direct replies, and replies may in principle carry replies of their own.
The same model is used for raw comments (no classification fields set)
and classified comments.
"""

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CommentCategory(str, enum.Enum):
    """
    Topical / quality category assigned by the classifier.

    Only SPAM and TOXIC are ever marked for removal by the keyword
    heuristics; the AI backend may flag other categories too.
    """

    SPAM = "spam"
    BOT = "bot"
    TOXIC = "toxic"
    GENUINE = "genuine"
    QUESTION = "question"
    FEEDBACK = "feedback"
    DISCUSSION = "discussion"


class Comment(BaseModel):
    """A YouTube comment or live chat message, optionally classified."""

    id: str = Field(..., min_length=1, description="Opaque id from the source, unique per board")
    author: str = Field("", description="Author display name")
    text: str = Field("", description="Plain text of the comment")
    published_at: Optional[str] = Field(
        None,
        description="ISO-8601 timestamp as delivered by the source",
        examples=["2024-05-01T18:30:00Z"]
    )
    like_count: int = Field(0, ge=0)
    replies: List["Comment"] = Field(default_factory=list)

    # Classification output
    category: Optional[CommentCategory] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    should_remove: Optional[bool] = None
    classification_reason: Optional[str] = None

    # Source specific extras (chat owner/moderator flags, avatar URL, ...)
    metadata: Optional[Dict[str, Any]] = None


class CategoryStat(BaseModel):
    """Count and rounded percentage for one category."""

    count: int = 0
    percentage: int = 0


def _empty_categories() -> Dict[CommentCategory, CategoryStat]:
    return {category: CategoryStat() for category in CommentCategory}


class BoardStats(BaseModel):
    """
    Category statistics over a board's threads and replies.

    `categories` always holds an entry for every CommentCategory.
    Percentages are rounded independently and may not sum to 100.
    """

    total_comments: int = 0
    removed_comments: int = 0
    categories: Dict[CommentCategory, CategoryStat] = Field(default_factory=_empty_categories)

    def count_for(self, category: CommentCategory) -> int:
        return self.categories.get(category, CategoryStat()).count

    def percentage_for(self, category: CommentCategory) -> int:
        return self.categories.get(category, CategoryStat()).percentage
