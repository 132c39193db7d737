"""
Category statistics for classified comment trees.
"""

import math
from typing import Dict, List

from forumyzer.schemas.comments import BoardStats, CategoryStat, Comment, CommentCategory


def count_comments(threads: List[Comment]) -> int:
    """Number of comments in a thread tree, replies included."""
    total = 0
    stack = list(threads)
    while stack:
        comment = stack.pop()
        total += 1
        stack.extend(comment.replies)
    return total


def percentage(count: int, total: int) -> int:
    """round(100 * count / total) with halves rounded up; 0 for an empty board."""
    if total <= 0:
        return 0
    return math.floor(100 * count / total + 0.5)


def compute_board_stats(threads: List[Comment], removed_comments: int = 0) -> BoardStats:
    """
    Count categories over threads and all their replies.

    Comments without a category count as genuine. Each percentage is rounded
    on its own, so the percentages may not add up to exactly 100.

    Args:
        threads: Classified thread tree
        removed_comments: How many comments were filtered out beforehand

    Returns:
        BoardStats with an entry for every category
    """
    counts: Dict[CommentCategory, int] = {category: 0 for category in CommentCategory}
    total = 0

    stack = list(threads)
    while stack:
        comment = stack.pop()
        total += 1
        counts[comment.category or CommentCategory.GENUINE] += 1
        stack.extend(comment.replies)

    return BoardStats(
        total_comments=total,
        removed_comments=removed_comments,
        categories={
            category: CategoryStat(count=count, percentage=percentage(count, total))
            for category, count in counts.items()
        },
    )
