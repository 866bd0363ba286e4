"""
Supervisor Alerts

Rule checks run after each completed, scored simulation. Each rule that
matches appends one CoachingAlert addressed to the agent's supervisor.

Rules:
- low_performance: the 3 most recent overall scores are all below 60
  (critical if their rounded mean is below 50, else high)
- stagnation: mean of sessions 1-3 back vs 5-7 back moved by less than 3
- improvement: a category scored 15+ above its mean over up to 5 prior sessions

Alerts are never updated except for status, which only moves
pending -> acknowledged -> resolved.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import AlertTransitionError
from models import CoachingAlert, Simulation, TeamAssignment, User, utcnow
from services.performance_analysis import recent_completed_simulations, round_half_up

logger = logging.getLogger(__name__)

LOW_SCORE_THRESHOLD = 60
CRITICAL_AVG_THRESHOLD = 50
STAGNATION_WINDOW = 7
STAGNATION_DELTA = 3
IMPROVEMENT_DELTA = 15
IMPROVEMENT_LOOKBACK = 5
IMPROVEMENT_MIN_PRIOR = 3

ALERT_TRANSITIONS = {
    "pending": "acknowledged",
    "acknowledged": "resolved",
}

MILESTONES = {
    "coaching_plan_completed": (
        "Coaching plan completed",
        "The agent has completed their coaching plan. Consider generating a new plan "
        "or recognizing the achievement.",
    ),
    "level_up": (
        "Level reached",
        "The agent has reached level {new_level}. Celebrate this achievement!",
    ),
    "expert_achieved": (
        "Expert level reached",
        "The agent has reached expert level in every category. Consider assigning "
        "them as a mentor.",
    ),
}


def get_supervisor_id(db: Session, user_id: int) -> Optional[int]:
    """Direct supervisor, else the supervisor on the user's team assignment."""
    user = db.query(User).filter(User.id == user_id).first()
    if user and user.supervisor_id:
        return user.supervisor_id

    assignment = db.query(TeamAssignment).filter(TeamAssignment.user_id == user_id).first()
    return assignment.supervisor_id if assignment else None


def _create_alert(
    db: Session,
    user_id: int,
    alert_type: str,
    severity: str,
    title: str,
    message: str,
    metadata: Dict[str, Any],
) -> CoachingAlert:
    alert = CoachingAlert(
        user_id=user_id,
        supervisor_id=get_supervisor_id(db, user_id),
        type=alert_type,
        severity=severity,
        title=title,
        message=message,
        alert_metadata=metadata,
        status="pending",
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)

    logger.info(
        f"Created {alert_type} alert for user {user_id}",
        extra={"extra_fields": {"alert_id": alert.id, "severity": severity}},
    )
    return alert


def _overall(sim: Simulation) -> int:
    return sim.overall_score or 0


def check_low_performance(db: Session, user_id: int) -> Optional[CoachingAlert]:
    recent = recent_completed_simulations(db, user_id, 5)
    if len(recent) < 3:
        return None

    last3 = recent[:3]
    if not all(_overall(sim) < LOW_SCORE_THRESHOLD for sim in last3):
        return None

    avg_score = round_half_up(sum(_overall(sim) for sim in last3) / 3)
    return _create_alert(
        db,
        user_id,
        alert_type="low_performance",
        severity="critical" if avg_score < CRITICAL_AVG_THRESHOLD else "high",
        title="Low performance detected",
        message=(
            f"The agent has had 3 consecutive simulations with low scores "
            f"(average: {avg_score}%). Immediate intervention is recommended."
        ),
        metadata={
            "avg_score": avg_score,
            "simulation_ids": [sim.id for sim in last3],
            "pattern": "consecutive_low_scores",
        },
    )


def check_stagnation(db: Session, user_id: int) -> Optional[CoachingAlert]:
    recent = recent_completed_simulations(db, user_id, STAGNATION_WINDOW)
    if len(recent) < STAGNATION_WINDOW:
        return None

    newest3 = recent[0:3]
    oldest3 = recent[4:7]
    new_avg = sum(_overall(sim) for sim in newest3) / 3
    old_avg = sum(_overall(sim) for sim in oldest3) / 3
    improvement = new_avg - old_avg

    if not (-STAGNATION_DELTA < improvement < STAGNATION_DELTA):
        return None

    return _create_alert(
        db,
        user_id,
        alert_type="stagnation",
        severity="medium",
        title="Stagnation detected",
        message=(
            f"The agent has not improved significantly over recent simulations "
            f"(average: {round_half_up(new_avg)}%). Consider reviewing the coaching plan."
        ),
        metadata={
            "old_avg": round_half_up(old_avg),
            "new_avg": round_half_up(new_avg),
            "improvement": round_half_up(improvement),
            "pattern": "no_improvement",
        },
    )


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_improvement(db: Session, user_id: int, simulation: Simulation) -> List[CoachingAlert]:
    """One alert per category where the current score beats the prior mean by 15+."""
    current_scores = simulation.category_scores or {}
    if not current_scores:
        return []

    previous = (
        db.query(Simulation)
        .filter(
            Simulation.user_id == user_id,
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(False),
            Simulation.id < simulation.id,
        )
        .order_by(Simulation.completed_at.desc(), Simulation.id.desc())
        .limit(IMPROVEMENT_LOOKBACK)
        .all()
    )
    if len(previous) < IMPROVEMENT_MIN_PRIOR:
        return []

    alerts = []
    for category, current in current_scores.items():
        if not _numeric(current):
            continue
        prior = [
            sim.category_scores[category]
            for sim in previous
            if sim.category_scores and _numeric(sim.category_scores.get(category))
        ]
        if not prior:
            continue

        prev_avg = sum(prior) / len(prior)
        improvement = current - prev_avg
        if improvement < IMPROVEMENT_DELTA:
            continue

        alerts.append(_create_alert(
            db,
            user_id,
            alert_type="improvement",
            severity="low",
            title="Significant improvement!",
            message=(
                f"The agent has improved significantly in {category} "
                f"(+{round_half_up(improvement)} points). Congratulate them!"
            ),
            metadata={
                "category": category,
                "previous_avg": round_half_up(prev_avg),
                "current_score": round_half_up(current),
                "improvement": round_half_up(improvement),
                "pattern": "significant_improvement",
            },
        ))
    return alerts


def check_milestone(
    db: Session,
    user_id: int,
    milestone_type: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[CoachingAlert]:
    """Milestone alert; unknown milestone types are ignored."""
    if milestone_type not in MILESTONES:
        logger.debug(f"Ignoring unknown milestone type {milestone_type}")
        return None

    metadata = metadata or {}
    title, template = MILESTONES[milestone_type]
    return _create_alert(
        db,
        user_id,
        alert_type="milestone",
        severity="low",
        title=title,
        message=template.format(new_level=metadata.get("new_level", "")),
        metadata={"milestone_type": milestone_type, **metadata},
    )


def run_alert_checks(db: Session, user_id: int, simulation_id: int) -> None:
    """Run every rule for a completed simulation. A failing rule does not stop the others."""
    simulation = db.query(Simulation).filter(Simulation.id == simulation_id).first()
    if simulation is None or simulation.is_practice_mode:
        return

    checks = (
        ("low_performance", lambda: check_low_performance(db, user_id)),
        ("stagnation", lambda: check_stagnation(db, user_id)),
        ("improvement", lambda: check_improvement(db, user_id, simulation)),
    )
    for name, check in checks:
        try:
            check()
        except Exception as e:
            db.rollback()
            logger.error(
                f"Alert check {name} failed for user {user_id}: {e}",
                exc_info=True,
                extra={"extra_fields": {"simulation_id": simulation_id}},
            )


def list_alerts(
    db: Session,
    viewer: User,
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 100,
) -> List[CoachingAlert]:
    """Admins and managers see every alert; supervisors see alerts addressed to them."""
    query = db.query(CoachingAlert)
    if viewer.role not in ("admin", "manager"):
        query = query.filter(CoachingAlert.supervisor_id == viewer.id)
    if status:
        query = query.filter(CoachingAlert.status == status)
    if user_id is not None:
        query = query.filter(CoachingAlert.user_id == user_id)
    return query.order_by(CoachingAlert.created_at.desc(), CoachingAlert.id.desc()).limit(limit).all()


def get_alert(db: Session, alert_id: int) -> Optional[CoachingAlert]:
    return db.query(CoachingAlert).filter(CoachingAlert.id == alert_id).first()


def _transition(db: Session, alert: CoachingAlert, target: str) -> CoachingAlert:
    if ALERT_TRANSITIONS.get(alert.status) != target:
        raise AlertTransitionError(f"Cannot move alert {alert.id} from {alert.status} to {target}")

    alert.status = target
    if target == "acknowledged":
        alert.acknowledged_at = utcnow()
    else:
        alert.resolved_at = utcnow()
    db.commit()
    db.refresh(alert)
    return alert


def acknowledge_alert(db: Session, alert: CoachingAlert) -> CoachingAlert:
    return _transition(db, alert, "acknowledged")


def resolve_alert(db: Session, alert: CoachingAlert) -> CoachingAlert:
    return _transition(db, alert, "resolved")


def pending_alert_count(db: Session, viewer: User) -> int:
    query = db.query(CoachingAlert).filter(CoachingAlert.status == "pending")
    if viewer.role not in ("admin", "manager"):
        query = query.filter(CoachingAlert.supervisor_id == viewer.id)
    return query.count()
