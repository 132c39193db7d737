"""
Celery tasks for background processing.
"""

from forumyzer.tasks.live_tasks import sweep_active_boards

__all__ = [
    "sweep_active_boards",
]
