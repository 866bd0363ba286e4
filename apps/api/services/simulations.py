"""
Simulation lifecycle.

start -> send_message (agent line + generated client reply) -> complete | abandon.

Completing a scored simulation evaluates the transcript, stores the
results and keyword highlights, and credits points to the agent. Practice
mode completes without any of that. Alert checks and coaching progress run
afterwards in the background (see tasks.coaching_tasks).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.auth import can_access_user_data
from core.cache import get_cache, set_cache, user_stats_key, invalidate_user_cache
from core.config import settings
from core.exceptions import AccessDeniedError, ResourceNotFoundError, SimulationStateError
from models import Message, Scenario, Simulation, User, utcnow
from services.alert_service import run_alert_checks
from services.coaching_plan import update_coaching_progress
from services.evaluation import EvaluationResult, evaluate_simulation, generate_client_response
from services.keyword_detection import detect_keywords, top_keywords
from services.llm_client import LLMClient
from services.performance_analysis import round_half_up

logger = logging.getLogger(__name__)


def _get_scenario(db: Session, scenario_id: int) -> Scenario:
    scenario = db.query(Scenario).filter(Scenario.id == scenario_id).first()
    if scenario is None:
        raise ResourceNotFoundError(f"Scenario not found: {scenario_id}")
    return scenario


def _get_owned_in_progress(db: Session, user: User, simulation_id: int) -> Simulation:
    simulation = db.query(Simulation).filter(Simulation.id == simulation_id).first()
    if simulation is None:
        raise ResourceNotFoundError(f"Simulation not found: {simulation_id}")
    if simulation.user_id != user.id:
        raise AccessDeniedError("You do not have access to this simulation")
    if simulation.status != "in_progress":
        raise SimulationStateError("The simulation is not active")
    return simulation


def start_simulation(
    db: Session,
    user: User,
    scenario_id: int,
    is_practice_mode: bool = False,
) -> Simulation:
    scenario = _get_scenario(db, scenario_id)
    if not scenario.is_active:
        raise SimulationStateError("The scenario is not active")

    simulation = Simulation(
        user_id=user.id,
        scenario_id=scenario.id,
        is_practice_mode=is_practice_mode,
        status="in_progress",
        started_at=utcnow(),
    )
    db.add(simulation)
    db.commit()
    db.refresh(simulation)
    invalidate_user_cache(user.id)

    logger.info(
        f"User {user.id} started simulation {simulation.id}",
        extra={"extra_fields": {"scenario_id": scenario.id, "practice": is_practice_mode}},
    )
    return simulation


def send_message(
    db: Session,
    user: User,
    simulation_id: int,
    content: str,
    llm: Optional[LLMClient] = None,
) -> Tuple[Message, Message]:
    """Store the agent's line and the simulated client's reply. Returns both."""
    simulation = _get_owned_in_progress(db, user, simulation_id)

    agent_message = Message(simulation_id=simulation.id, role="agent", content=content)
    db.add(agent_message)
    db.commit()

    history = get_messages(db, simulation.id)
    scenario = _get_scenario(db, simulation.scenario_id)
    reply = generate_client_response(scenario, history[:-1], content, llm=llm)

    client_message = Message(simulation_id=simulation.id, role="client", content=reply)
    db.add(client_message)
    db.commit()
    db.refresh(agent_message)
    db.refresh(client_message)
    return agent_message, client_message


def _transcript_keywords(messages: List[Message]) -> Dict[str, Any]:
    transcript = "\n".join(m.content for m in messages if m.role in ("agent", "client"))
    detected = detect_keywords(transcript)
    detected["top"] = top_keywords(detected["matches"])
    return detected


def complete_simulation(
    db: Session,
    user: User,
    simulation_id: int,
    llm: Optional[LLMClient] = None,
) -> Dict[str, Any]:
    """
    Finish a simulation.

    Returns the evaluation summary: overall_score, points_earned,
    badges_earned and is_practice_mode.
    """
    simulation = _get_owned_in_progress(db, user, simulation_id)
    now = utcnow()
    simulation.completed_at = now
    simulation.duration = int((now - simulation.started_at).total_seconds())
    simulation.status = "completed"

    if simulation.is_practice_mode:
        db.commit()
        invalidate_user_cache(user.id)
        logger.info(f"Practice simulation {simulation.id} completed without evaluation")
        return {
            "simulation_id": simulation.id,
            "overall_score": None,
            "points_earned": 0,
            "badges_earned": [],
            "is_practice_mode": True,
        }

    scenario = _get_scenario(db, simulation.scenario_id)
    messages = get_messages(db, simulation.id)
    evaluation: EvaluationResult = evaluate_simulation(scenario, messages, llm=llm)

    simulation.overall_score = evaluation.overall_score
    simulation.category_scores = evaluation.category_scores
    simulation.feedback = evaluation.feedback
    simulation.strengths = evaluation.strengths
    simulation.weaknesses = evaluation.weaknesses
    simulation.recommendations = evaluation.recommendations
    simulation.points_earned = evaluation.points_earned
    simulation.badges_earned = evaluation.badges_earned
    simulation.transcript_keywords = _transcript_keywords(messages)

    db_user = db.query(User).filter(User.id == user.id).first()
    db_user.points = (db_user.points or 0) + evaluation.points_earned
    if evaluation.badges_earned:
        owned = list(db_user.badges or [])
        db_user.badges = owned + [b for b in evaluation.badges_earned if b not in owned]

    db.commit()
    invalidate_user_cache(user.id)

    logger.info(
        f"Simulation {simulation.id} completed",
        extra={"extra_fields": {
            "user_id": user.id,
            "overall_score": evaluation.overall_score,
            "points_earned": evaluation.points_earned,
            "fallback": evaluation.is_fallback,
        }},
    )
    return {
        "simulation_id": simulation.id,
        "overall_score": evaluation.overall_score,
        "points_earned": evaluation.points_earned,
        "badges_earned": evaluation.badges_earned,
        "is_practice_mode": False,
    }


def abandon_simulation(db: Session, user: User, simulation_id: int) -> Simulation:
    simulation = _get_owned_in_progress(db, user, simulation_id)
    simulation.status = "abandoned"
    simulation.completed_at = utcnow()
    db.commit()
    db.refresh(simulation)
    invalidate_user_cache(user.id)
    return simulation


def get_simulation(db: Session, viewer: User, simulation_id: int) -> Simulation:
    """Owner, or anyone allowed to see the owner's data."""
    simulation = db.query(Simulation).filter(Simulation.id == simulation_id).first()
    if simulation is None:
        raise ResourceNotFoundError(f"Simulation not found: {simulation_id}")
    if not can_access_user_data(db, viewer, simulation.user_id):
        raise AccessDeniedError("You do not have access to this simulation")
    return simulation


def list_user_simulations(
    db: Session,
    user_id: int,
    limit: int = 50,
    status: Optional[str] = None,
) -> List[Simulation]:
    query = db.query(Simulation).filter(Simulation.user_id == user_id)
    if status:
        query = query.filter(Simulation.status == status)
    return query.order_by(Simulation.started_at.desc(), Simulation.id.desc()).limit(limit).all()


def get_messages(db: Session, simulation_id: int) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.simulation_id == simulation_id)
        .order_by(Message.id)
        .all()
    )


def compute_user_stats(db: Session, user_id: int) -> Dict[str, Any]:
    completed = (
        db.query(
            func.count(Simulation.id),
            func.avg(Simulation.overall_score),
            func.sum(Simulation.points_earned),
        )
        .filter(
            Simulation.user_id == user_id,
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(False),
        )
        .one()
    )
    count, avg_score, total_points = completed
    started = (
        db.query(func.count(Simulation.id))
        .filter(Simulation.user_id == user_id, Simulation.is_practice_mode.is_(False))
        .scalar()
    )
    practice = (
        db.query(func.count(Simulation.id))
        .filter(
            Simulation.user_id == user_id,
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(True),
        )
        .scalar()
    )

    return {
        "user_id": user_id,
        "total_simulations": count or 0,
        "practice_simulations": practice or 0,
        "average_score": round_half_up(float(avg_score)) if avg_score is not None else 0,
        "completion_rate": round_half_up(100 * (count or 0) / started) if started else 0,
        "total_points": int(total_points or 0),
    }


def get_user_stats(db: Session, user_id: int) -> Dict[str, Any]:
    """Aggregate stats, cached per user until they start, finish or abandon a simulation."""
    key = user_stats_key(user_id)
    cached = get_cache(key)
    if cached is not None:
        return cached

    stats = compute_user_stats(db, user_id)
    set_cache(key, stats, ttl=settings.CACHE_TTL_USER_STATS)
    return stats


def run_post_completion(db: Session, user_id: int, simulation_id: int) -> None:
    """
    Follow-up work for a completed simulation: supervisor alert checks and
    coaching plan progress. Each step's failure is logged and swallowed so
    the other still runs.
    """
    simulation = db.query(Simulation).filter(Simulation.id == simulation_id).first()
    if simulation is None or simulation.is_practice_mode or simulation.status != "completed":
        logger.debug(f"Skipping post-completion for simulation {simulation_id}")
        return

    run_alert_checks(db, user_id, simulation_id)

    try:
        update_coaching_progress(db, user_id, simulation.scenario_id)
    except Exception as e:
        db.rollback()
        logger.error(
            f"Coaching progress update failed for user {user_id}: {e}",
            exc_info=True,
            extra={"extra_fields": {"simulation_id": simulation_id}},
        )
