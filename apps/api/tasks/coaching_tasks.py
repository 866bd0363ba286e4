"""
Celery tasks that follow a completed simulation.

The API enqueues these fire-and-forget; nothing waits on the result.
"""
import logging
from typing import Dict

from celery import Task

from core.database import session_scope
from tasks import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.run_post_completion", bind=True)
def run_post_completion_task(self: Task, user_id: int, simulation_id: int) -> Dict:
    """
    Supervisor alert checks and coaching-plan progress for one simulation.

    Returns:
        {"status": "success" | "error", "simulation_id": ...}
    """
    from services.simulations import run_post_completion

    try:
        with session_scope() as db:
            run_post_completion(db, user_id, simulation_id)
    except Exception as e:
        logger.error(
            f"Post-completion task failed for simulation {simulation_id}: {e}",
            exc_info=True,
            extra={"extra_fields": {"task_id": self.request.id, "user_id": user_id}},
        )
        return {"status": "error", "simulation_id": simulation_id, "error": str(e)}

    return {"status": "success", "user_id": user_id, "simulation_id": simulation_id}
