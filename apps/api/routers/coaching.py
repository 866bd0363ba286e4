"""
Coaching API Router

Performance analysis, coaching plans and buddy pairing.

A user works on their own data by default; supervisors and above may pass
`user_id` for members of their team.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from core.database import get_db
from core.auth import get_current_user, ensure_can_access
from core.exceptions import DomainError, NotFoundError, to_api_exception
from models import User
from schemas import (
    BuddyCandidateResponse,
    BuddyGoalUpdate,
    BuddyPairCreate,
    BuddyPairResponse,
    CoachingPlanResponse,
    PerformanceAnalysisResponse,
)
from services import buddy_matching, coaching_plan
from services.llm_client import LLMClient, get_llm_client
from services.performance_analysis import analyze_agent_performance

router = APIRouter(prefix="/v1/coaching", tags=["coaching"])


def _target_user_id(db: Session, current_user: User, user_id: Optional[int]) -> int:
    if user_id is None or user_id == current_user.id:
        return current_user.id
    ensure_can_access(db, current_user, user_id)
    return user_id


@router.get("/analysis", response_model=PerformanceAnalysisResponse)
def get_performance_analysis(
    user_id: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target = _target_user_id(db, current_user, user_id)
    try:
        return analyze_agent_performance(db, target).to_dict()
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/plan", response_model=CoachingPlanResponse, status_code=201)
def generate_plan(
    user_id: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """Generate a new coaching plan. Any active plan is cancelled."""
    target = _target_user_id(db, current_user, user_id)
    try:
        return coaching_plan.create_coaching_plan(db, target, llm=llm)
    except DomainError as e:
        raise to_api_exception(e)


@router.get("/plan", response_model=Optional[CoachingPlanResponse])
def get_active_plan(
    user_id: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target = _target_user_id(db, current_user, user_id)
    return coaching_plan.get_active_coaching_plan(db, target)


@router.get("/plans", response_model=List[CoachingPlanResponse])
def list_plans(
    user_id: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target = _target_user_id(db, current_user, user_id)
    return coaching_plan.list_coaching_plans(db, target)


@router.post("/plans/{plan_id}/cancel", response_model=CoachingPlanResponse)
def cancel_plan(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan = coaching_plan.cancel_coaching_plan(db, current_user.id, plan_id)
    if plan is None:
        raise NotFoundError("Coaching plan", plan_id)
    return plan


# ---------------------------------------------------------------------------
# Buddies
# ---------------------------------------------------------------------------

@router.get("/buddies/candidates", response_model=List[BuddyCandidateResponse])
def buddy_candidates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return [c.to_dict() for c in buddy_matching.find_buddy_candidates(db, current_user.id)]
    except DomainError as e:
        raise to_api_exception(e)


@router.post("/buddies", response_model=BuddyPairResponse, status_code=201)
def create_buddy_pair(
    payload: BuddyPairCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        pair = buddy_matching.create_buddy_pair(
            db,
            current_user.id,
            payload.buddy_id,
            match_score=payload.match_score,
            match_reason=payload.match_reason,
        )
    except DomainError as e:
        raise to_api_exception(e)
    return buddy_matching.get_buddy_pair(db, current_user.id) or pair


@router.get("/buddies/me", response_model=Optional[BuddyPairResponse])
def my_buddy_pair(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return buddy_matching.get_buddy_pair(db, current_user.id)


@router.patch("/buddies/{pair_id}/goal", response_model=BuddyPairResponse)
def update_buddy_goal(
    pair_id: int,
    payload: BuddyGoalUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pair = buddy_matching.get_pair_for_member(db, pair_id, current_user.id)
    if pair is None:
        raise NotFoundError("Buddy pair", pair_id)
    return buddy_matching.update_buddy_goal(db, pair, payload.shared_goal)


@router.post("/buddies/{pair_id}/end", response_model=BuddyPairResponse)
def end_buddy_pair(
    pair_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    pair = buddy_matching.get_pair_for_member(db, pair_id, current_user.id)
    if pair is None:
        raise NotFoundError("Buddy pair", pair_id)
    return buddy_matching.end_buddy_pair(db, pair)
