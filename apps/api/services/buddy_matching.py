"""
Buddy Matching

Pairs agents whose strengths cover each other's weaknesses.

Scoring a candidate against the requesting user:
- +30 per candidate strength (score >= 75) in one of the user's weaknesses
- +20 per candidate weakness in one of the user's strengths
- +20 "mutual benefit" bonus once there are at least two reasons
A user without enough history gets every candidate at a flat 50, with the
candidate's top two strengths as reasons.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.exceptions import (
    BuddyPairConflictError,
    InsufficientDataError,
    InvalidOperationError,
    ResourceNotFoundError,
)
from models import BuddyPair, Simulation, User, utcnow
from services.performance_analysis import (
    MIN_SIMULATIONS,
    STRENGTH_THRESHOLD,
    PerformanceAnalysis,
    analyze_agent_performance,
    try_analyze_agent_performance,
)

logger = logging.getLogger(__name__)

STRENGTH_MATCH_POINTS = 30
WEAKNESS_MATCH_POINTS = 20
MUTUAL_BENEFIT_BONUS = 20
BASELINE_SCORE = 50
MAX_CANDIDATES = 5

ACTIVE_PAIR_CONFLICT = "One or both agents are already in an active buddy pair"


@dataclass
class BuddyCandidate:
    user_id: int
    name: Optional[str]
    role: str
    department: Optional[str]
    strengths: List[Dict[str, Any]] = field(default_factory=list)
    weaknesses: List[Dict[str, Any]] = field(default_factory=list)
    compatibility_score: int = 0
    match_reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def score_compatibility(
    user_analysis: Optional[PerformanceAnalysis],
    candidate_analysis: PerformanceAnalysis,
) -> Tuple[int, List[str]]:
    """Compatibility score and human-readable reasons for one candidate."""
    reasons: List[str] = []

    if user_analysis is None:
        for strength in candidate_analysis.strengths[:2]:
            reasons.append(f"Expert in {strength.category}")
        if not reasons:
            reasons.append("Experienced agent")
        return BASELINE_SCORE, reasons

    score = 0
    candidate_strengths = {
        s.category for s in candidate_analysis.strengths if s.current_score >= STRENGTH_THRESHOLD
    }
    candidate_weaknesses = set(candidate_analysis.weakness_categories())

    for weakness in user_analysis.weaknesses:
        if weakness.category in candidate_strengths:
            score += STRENGTH_MATCH_POINTS
            reasons.append(f"Strong in {weakness.category} (your weakness)")

    for strength in user_analysis.strengths:
        if strength.category in candidate_weaknesses:
            score += WEAKNESS_MATCH_POINTS
            reasons.append(f"You can help with {strength.category}")

    if len(reasons) >= 2:
        score += MUTUAL_BENEFIT_BONUS
        reasons.append("Mutual benefit")

    return score, reasons


def _eligible_user_ids(db: Session, exclude_user_id: int) -> List[int]:
    """Users with at least 3 completed, non-practice simulations."""
    rows = (
        db.query(Simulation.user_id)
        .filter(
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(False),
            Simulation.user_id != exclude_user_id,
        )
        .group_by(Simulation.user_id)
        .having(func.count(Simulation.id) >= MIN_SIMULATIONS)
        .order_by(Simulation.user_id)
        .all()
    )
    return [user_id for (user_id,) in rows]


def find_buddy_candidates(db: Session, user_id: int) -> List[BuddyCandidate]:
    """
    Top 5 buddy candidates for `user_id`, best match first.

    Raises ResourceNotFoundError if the user does not exist.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise ResourceNotFoundError(f"User not found: {user_id}")

    user_analysis = try_analyze_agent_performance(db, user_id)

    candidates: List[BuddyCandidate] = []
    for candidate_id in _eligible_user_ids(db, user_id):
        try:
            candidate_analysis = analyze_agent_performance(db, candidate_id)
        except InsufficientDataError:
            continue

        score, reasons = score_compatibility(user_analysis, candidate_analysis)
        if score <= 0:
            continue

        candidate_user = db.query(User).filter(User.id == candidate_id).first()
        if candidate_user is None:
            continue

        candidates.append(BuddyCandidate(
            user_id=candidate_id,
            name=candidate_user.name,
            role=candidate_user.role,
            department=candidate_user.department,
            strengths=[asdict(s) for s in candidate_analysis.strengths],
            weaknesses=[asdict(w) for w in candidate_analysis.weaknesses],
            compatibility_score=score,
            match_reasons=reasons,
        ))

    # stable sort: ties keep user id order
    candidates.sort(key=lambda c: c.compatibility_score, reverse=True)
    return candidates[:MAX_CANDIDATES]


def _active_pair_query(db: Session, *user_ids: int):
    return db.query(BuddyPair).filter(
        BuddyPair.status == "active",
        or_(BuddyPair.agent_id_1.in_(user_ids), BuddyPair.agent_id_2.in_(user_ids)),
    )


def create_buddy_pair(
    db: Session,
    agent_id: int,
    buddy_id: int,
    match_score: Optional[int] = None,
    match_reason: Optional[str] = None,
) -> BuddyPair:
    """
    Start an active pair between two agents.

    Raises:
        InvalidOperationError: an agent paired with themselves.
        ResourceNotFoundError: the buddy does not exist.
        BuddyPairConflictError: either agent is already in an active pair.
    """
    if agent_id == buddy_id:
        raise InvalidOperationError("An agent cannot be paired with themselves")

    if db.query(User).filter(User.id == buddy_id).first() is None:
        raise ResourceNotFoundError(f"User not found: {buddy_id}")

    if _active_pair_query(db, agent_id, buddy_id).first() is not None:
        raise BuddyPairConflictError(ACTIVE_PAIR_CONFLICT)

    now = utcnow()
    pair = BuddyPair(
        agent_id_1=agent_id,
        agent_id_2=buddy_id,
        status="active",
        match_score=match_score,
        match_reason=match_reason,
        created_at=now,
        accepted_at=now,
    )
    db.add(pair)
    db.commit()
    db.refresh(pair)

    logger.info(f"Created buddy pair {pair.id} between users {agent_id} and {buddy_id}")
    return pair


def get_buddy_pair(db: Session, user_id: int) -> Optional[Dict[str, Any]]:
    """The user's active pair plus `buddy_user_id` (the other agent), or None."""
    pair = _active_pair_query(db, user_id).order_by(BuddyPair.id.desc()).first()
    if pair is None:
        return None

    buddy_user_id = pair.agent_id_2 if pair.agent_id_1 == user_id else pair.agent_id_1
    buddy = db.query(User).filter(User.id == buddy_user_id).first()
    return {
        "id": pair.id,
        "agent_id_1": pair.agent_id_1,
        "agent_id_2": pair.agent_id_2,
        "status": pair.status,
        "match_score": pair.match_score,
        "match_reason": pair.match_reason,
        "shared_goal": pair.shared_goal,
        "target_weeks": pair.target_weeks,
        "created_at": pair.created_at,
        "accepted_at": pair.accepted_at,
        "completed_at": pair.completed_at,
        "buddy_user_id": buddy_user_id,
        "buddy_name": buddy.name if buddy else None,
    }


def get_pair_for_member(db: Session, pair_id: int, user_id: int) -> Optional[BuddyPair]:
    return (
        db.query(BuddyPair)
        .filter(
            BuddyPair.id == pair_id,
            or_(BuddyPair.agent_id_1 == user_id, BuddyPair.agent_id_2 == user_id),
        )
        .first()
    )


def update_buddy_goal(db: Session, pair: BuddyPair, shared_goal: Optional[str]) -> BuddyPair:
    pair.shared_goal = shared_goal
    db.commit()
    db.refresh(pair)
    return pair


def end_buddy_pair(db: Session, pair: BuddyPair) -> BuddyPair:
    pair.status = "completed"
    pair.completed_at = utcnow()
    db.commit()
    db.refresh(pair)
    logger.info(f"Ended buddy pair {pair.id}")
    return pair
