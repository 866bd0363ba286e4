"""
Coaching Plans

Builds a personalized plan from the performance analysis: the weaknesses to
work on, up to 5 recommended scenarios and LLM-written guidance (priority
areas, weekly goal, estimated weeks). A user has at most one active plan.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NoWeaknessesError
from models import CoachingPlan, Scenario, utcnow
from services.alert_service import check_milestone
from services.llm_client import LLMClient, LLMError, get_llm_client
from services.performance_analysis import analyze_agent_performance, round_half_up

logger = logging.getLogger(__name__)

# Score category -> scenario category that exercises it
WEAKNESS_SCENARIO_CATEGORY = {
    "empathy": "complaint",
    "clarity": "informative",
    "protocol": "fraud",
    "resolution": "transactional",
    "confidence": "credit",
}
DEFAULT_SCENARIO_CATEGORY = "informative"

TOP_WEAKNESSES = 3
SCENARIOS_PER_WEAKNESS = 2
MAX_RECOMMENDED_SCENARIOS = 5

DEFAULT_WEEKLY_GOAL = "Complete 3 simulations this week"
DEFAULT_ESTIMATED_WEEKS = 4
MIN_WEEKS, MAX_WEEKS = 1, 8


@dataclass
class CoachingPlanData:
    weakness_analysis: List[Dict[str, Any]]
    strengths_analysis: List[Dict[str, Any]]
    priority_areas: List[str]
    recommended_scenarios: List[int]
    weekly_goal: str
    estimated_weeks: int
    improvement_strategy: Optional[str] = None
    key_focus_points: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def recommend_scenarios(db: Session, weakness_categories: List[str]) -> List[int]:
    """Up to 2 active scenarios per top-3 weakness, capped at 5, no duplicates."""
    recommended: List[int] = []
    for category in weakness_categories[:TOP_WEAKNESSES]:
        scenario_category = WEAKNESS_SCENARIO_CATEGORY.get(category, DEFAULT_SCENARIO_CATEGORY)
        scenarios = (
            db.query(Scenario.id)
            .filter(Scenario.category == scenario_category, Scenario.is_active.is_(True))
            .order_by(Scenario.id)
            .limit(SCENARIOS_PER_WEAKNESS)
            .all()
        )
        for (scenario_id,) in scenarios:
            if scenario_id not in recommended:
                recommended.append(scenario_id)
    return recommended[:MAX_RECOMMENDED_SCENARIOS]


def _plan_prompt(weaknesses: List[Dict], strengths: List[Dict]) -> str:
    return f"""You are an expert coach for banking contact-center agents.
Analyze the agent's performance and write a personalized coaching plan.

Detected weaknesses:
{json.dumps(weaknesses, indent=2)}

Strengths:
{json.dumps(strengths, indent=2)}

Return a JSON object with this structure:
{{
  "priorityAreas": ["area 1", "area 2", "area 3"],
  "weeklyGoal": "clear, achievable weekly goal (e.g. 'Practice 3 fraud scenarios this week')",
  "estimatedWeeks": <weeks until significant improvement, 1-8>,
  "improvementStrategy": "2-3 sentence strategy",
  "keyFocusPoints": ["point 1", "point 2", "point 3"]
}}

At most 3 priority areas. Be specific, motivating and realistic."""


def _coerce_weeks(value: Any) -> int:
    try:
        weeks = int(value)
    except (TypeError, ValueError):
        return DEFAULT_ESTIMATED_WEEKS
    return max(MIN_WEEKS, min(MAX_WEEKS, weeks))


def _string_list(value: Any, limit: Optional[int] = None) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [str(v).strip() for v in value if v and str(v).strip()]
    return items[:limit] if limit else items


def generate_coaching_plan(
    db: Session,
    user_id: int,
    llm: Optional[LLMClient] = None,
) -> CoachingPlanData:
    """
    Plan content for a user, without persisting anything.

    Raises:
        InsufficientDataError: fewer than 3 scored simulations.
        NoWeaknessesError: nothing below the weakness threshold.
    """
    analysis = analyze_agent_performance(db, user_id)
    if not analysis.weaknesses:
        raise NoWeaknessesError(
            "No areas for improvement detected. The agent is performing well in every category."
        )

    weaknesses = [asdict(w) for w in analysis.weaknesses]
    strengths = [asdict(s) for s in analysis.strengths]
    weakness_categories = analysis.weakness_categories()

    recommended = recommend_scenarios(db, weakness_categories)

    llm = llm or get_llm_client()
    ai_plan: Dict[str, Any] = {}
    try:
        ai_plan = llm.chat_json([{"role": "user", "content": _plan_prompt(weaknesses, strengths)}])
    except LLMError as e:
        logger.warning(f"Coaching plan text for user {user_id} fell back to defaults: {e}")

    priority_areas = _string_list(ai_plan.get("priorityAreas"), limit=TOP_WEAKNESSES)
    weekly_goal = ai_plan.get("weeklyGoal")
    strategy = ai_plan.get("improvementStrategy")

    return CoachingPlanData(
        weakness_analysis=weaknesses,
        strengths_analysis=strengths,
        priority_areas=priority_areas or weakness_categories[:TOP_WEAKNESSES],
        recommended_scenarios=recommended,
        weekly_goal=weekly_goal.strip() if isinstance(weekly_goal, str) and weekly_goal.strip() else DEFAULT_WEEKLY_GOAL,
        estimated_weeks=_coerce_weeks(ai_plan.get("estimatedWeeks")),
        improvement_strategy=strategy if isinstance(strategy, str) and strategy.strip() else None,
        key_focus_points=_string_list(ai_plan.get("keyFocusPoints")),
    )


def get_active_coaching_plan(db: Session, user_id: int) -> Optional[CoachingPlan]:
    return (
        db.query(CoachingPlan)
        .filter(CoachingPlan.user_id == user_id, CoachingPlan.status == "active")
        .order_by(CoachingPlan.generated_at.desc(), CoachingPlan.id.desc())
        .first()
    )


def create_coaching_plan(
    db: Session,
    user_id: int,
    llm: Optional[LLMClient] = None,
) -> CoachingPlan:
    """
    Generate and store a new active plan, cancelling any active one.

    The plan is generated before anything is cancelled, so a failed
    generation leaves the current plan in place.
    """
    data = generate_coaching_plan(db, user_id, llm=llm)

    cancelled = (
        db.query(CoachingPlan)
        .filter(CoachingPlan.user_id == user_id, CoachingPlan.status == "active")
        .update({CoachingPlan.status: "cancelled"}, synchronize_session="fetch")
    )

    now = utcnow()
    plan = CoachingPlan(
        user_id=user_id,
        status="active",
        generated_at=now,
        expires_at=now + timedelta(days=7 * data.estimated_weeks),
        weakness_analysis=data.weakness_analysis,
        strengths_analysis=data.strengths_analysis,
        priority_areas=data.priority_areas,
        recommended_scenarios=data.recommended_scenarios,
        completed_scenarios=[],
        weekly_goal=data.weekly_goal,
        estimated_weeks=data.estimated_weeks,
        improvement_strategy=data.improvement_strategy,
        key_focus_points=data.key_focus_points,
        progress=0,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)

    logger.info(
        f"Created coaching plan {plan.id} for user {user_id}",
        extra={"extra_fields": {"cancelled_plans": cancelled, "recommended": len(data.recommended_scenarios)}},
    )
    return plan


def update_coaching_progress(db: Session, user_id: int, scenario_id: int) -> Optional[CoachingPlan]:
    """
    Record a completed recommended scenario on the active plan.

    Returns the plan when it changed, else None. Reaching 100% completes the
    plan and raises a milestone alert.
    """
    plan = get_active_coaching_plan(db, user_id)
    if plan is None:
        return None

    recommended = list(plan.recommended_scenarios or [])
    completed = list(plan.completed_scenarios or [])
    if scenario_id not in recommended or scenario_id in completed:
        return None

    completed.append(scenario_id)
    plan.completed_scenarios = completed
    plan.progress = min(100, round_half_up(100 * len(completed) / len(recommended)))
    if plan.progress >= 100:
        plan.status = "completed"
    db.commit()
    db.refresh(plan)

    if plan.status == "completed":
        logger.info(f"Coaching plan {plan.id} completed by user {user_id}")
        check_milestone(db, user_id, "coaching_plan_completed", {"plan_id": plan.id})

    return plan


def list_coaching_plans(db: Session, user_id: int) -> List[CoachingPlan]:
    return (
        db.query(CoachingPlan)
        .filter(CoachingPlan.user_id == user_id)
        .order_by(CoachingPlan.generated_at.desc(), CoachingPlan.id.desc())
        .all()
    )


def cancel_coaching_plan(db: Session, user_id: int, plan_id: int) -> Optional[CoachingPlan]:
    """Cancel the user's plan. Returns None if the plan is not theirs."""
    plan = (
        db.query(CoachingPlan)
        .filter(CoachingPlan.id == plan_id, CoachingPlan.user_id == user_id)
        .first()
    )
    if plan is None:
        return None
    if plan.status == "active":
        plan.status = "cancelled"
        db.commit()
        db.refresh(plan)
    return plan
