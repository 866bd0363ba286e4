"""
Team overview for supervisors and managers.
"""
import logging
from collections import Counter
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.cache import get_cache, set_cache, team_overview_key
from core.config import settings
from models import Simulation, User
from services.performance_analysis import round_half_up, try_analyze_agent_performance

logger = logging.getLogger(__name__)

COMMON_WEAKNESS_LIMIT = 3


def get_team_members(db: Session, viewer: User) -> List[User]:
    """Admins and managers see everyone; supervisors see their direct reports."""
    query = db.query(User)
    if viewer.role not in ("admin", "manager"):
        query = query.filter(User.supervisor_id == viewer.id)
    return query.order_by(User.name, User.id).all()


def _member_summary(db: Session, member: User) -> Dict[str, Any]:
    count, avg_score = (
        db.query(func.count(Simulation.id), func.avg(Simulation.overall_score))
        .filter(
            Simulation.user_id == member.id,
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(False),
        )
        .one()
    )
    analysis = try_analyze_agent_performance(db, member.id)
    return {
        "user_id": member.id,
        "name": member.name,
        "role": member.role,
        "level": member.level,
        "points": member.points or 0,
        "simulations_completed": count or 0,
        "average_score": round_half_up(float(avg_score)) if avg_score is not None else None,
        "weaknesses": analysis.weakness_categories() if analysis else [],
        "strengths": analysis.strength_categories() if analysis else [],
    }


def get_team_overview(db: Session, viewer: User) -> Dict[str, Any]:
    """
    Per-member stats plus team totals.

    common_weaknesses lists the categories that are a weakness for the most
    members (ties broken alphabetically).
    """
    key = team_overview_key(viewer.id)
    cached = get_cache(key)
    if cached is not None:
        return cached

    members = [_member_summary(db, m) for m in get_team_members(db, viewer)]

    scored = [m["average_score"] for m in members if m["average_score"] is not None]
    weakness_counts = Counter(c for m in members for c in m["weaknesses"])
    common = sorted(weakness_counts.items(), key=lambda item: (-item[1], item[0]))

    overview = {
        "members": members,
        "total_members": len(members),
        "total_simulations": sum(m["simulations_completed"] for m in members),
        "total_points": sum(m["points"] for m in members),
        "average_score": round_half_up(sum(scored) / len(scored)) if scored else None,
        "common_weaknesses": [
            {"category": category, "members": count}
            for category, count in common[:COMMON_WEAKNESS_LIMIT]
        ],
    }
    set_cache(key, overview, ttl=settings.CACHE_TTL_TEAM_OVERVIEW)
    return overview
