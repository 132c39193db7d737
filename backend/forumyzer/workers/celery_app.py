"""
Celery application instance and configuration.
"""

from celery import Celery
from celery.schedules import crontab
from forumyzer.core.config import settings

# Create Celery application
celery_app = Celery(
    "forumyzer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.celery_accept_content_list,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=settings.CELERY_ENABLE_UTC,
    task_track_started=True,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,  # 4 minutes
    result_expires=3600,  # 1 hour
)

# Celery Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    'sweep-live-boards': {
        'task': 'live.sweep_active_boards',
        'schedule': crontab(minute='*'),  # Every minute
        'options': {'queue': 'live'},
    },
}

# Task routing
celery_app.conf.task_routes = {
    'live.*': {'queue': 'live'},
}

# Auto-discover tasks from forumyzer.tasks
celery_app.autodiscover_tasks(['forumyzer.tasks'])
