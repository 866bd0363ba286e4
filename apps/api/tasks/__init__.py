"""
Celery app shared by the API (which enqueues) and the worker (which runs).

Post-completion work goes to its own `coaching` queue so a backlog of alert
checks never delays anything else the worker picks up.
"""
from celery import Celery

from core.config import settings

COACHING_QUEUE = "coaching"

celery_app = Celery(
    "agent_training",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=24 * 60 * 60,
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Alert checks and plan progress are a handful of queries each
    task_time_limit=2 * 60,
    task_soft_time_limit=90,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={"tasks.run_post_completion": {"queue": COACHING_QUEUE}},
)

# Registers the tasks on import
from . import coaching_tasks  # noqa: E402

__all__ = ["celery_app", "COACHING_QUEUE"]
