"""
Thread merging for message boards.

New threads are folded into a board's existing threads on every live poll
or reprocess. Existing comments always win over incoming ones with the same
id, and the result is fully re-sorted newest first.
"""

from datetime import datetime, timezone
from typing import List, Optional

from forumyzer.schemas.comments import Comment


def published_timestamp(comment: Comment) -> float:
    """
    Sort key for a comment: its published_at as a POSIX timestamp.

    Missing or unparseable timestamps count as the epoch, i.e. oldest.
    """
    return parse_timestamp(comment.published_at)


def parse_timestamp(value: Optional[str]) -> float:
    if not value:
        return 0.0

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.timestamp()


def merge_threads(existing: List[Comment], new: List[Comment]) -> List[Comment]:
    """
    Merge newly fetched threads into existing ones.

    - Incoming threads whose id is already present are discarded
      (first write wins, existing content is never overwritten)
    - Repeated ids inside `new` keep only their first occurrence
    - The combined list is sorted by published_at, newest first; the sort
      is stable, so equal timestamps keep existing-then-new order

    Args:
        existing: Threads already on the board
        new: Freshly fetched threads

    Returns:
        A new list; neither input is modified
    """
    seen = {thread.id for thread in existing}
    merged = list(existing)

    for thread in new:
        if thread.id in seen:
            continue
        seen.add(thread.id)
        merged.append(thread)

    return sorted(merged, key=published_timestamp, reverse=True)
