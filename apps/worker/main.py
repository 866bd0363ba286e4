"""
Celery worker entry point.

    celery -A main worker -Q coaching,celery --loglevel=INFO

The API source is mounted at /api in the worker image; API_PATH overrides it
for local runs.
"""
import os
import sys

sys.path.insert(0, os.environ.get("API_PATH", "/api"))

from core.database import check_db_connection  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()


@celery_app.task(name="worker.health_check")
def health_check():
    """Round-trips through the broker and confirms the worker can reach the database."""
    return {"status": "ok", "database": "ok" if check_db_connection() else "unavailable"}
