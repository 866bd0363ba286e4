"""
Agent Performance Analysis

Turns an agent's recent scored simulations into per-category weaknesses and
strengths. Feeds coaching plans and buddy matching.

Rules (fixed constants, reproducible):
- Sample: last 10 completed, non-practice simulations; fewer than 3 is an error.
- Weakness: category mean < 70. Priority high < 60, medium < 65, low < 70.
- Strength: category mean >= 75.
- 70 <= mean < 75 is a neutral band: neither weakness nor strength.
- Trend: mean of the newer half minus mean of the older half;
  +3 or more improving, -3 or less declining, otherwise stable.
- Consistency: max(0, 100 - 2 * population stddev).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from core.exceptions import InsufficientDataError
from models import Simulation

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 10
MIN_SIMULATIONS = 3

WEAKNESS_THRESHOLD = 70
STRENGTH_THRESHOLD = 75
HIGH_PRIORITY_BELOW = 60
MEDIUM_PRIORITY_BELOW = 65
TREND_DELTA = 3

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass
class WeaknessAnalysis:
    category: str
    current_score: int
    gap: int
    priority: str  # high | medium | low
    trend: str  # improving | stable | declining


@dataclass
class StrengthAnalysis:
    category: str
    current_score: int
    consistency: int  # 0-100


@dataclass
class CategoryStats:
    mean: float
    stddev: float
    consistency: float
    trend: str


@dataclass
class PerformanceAnalysis:
    user_id: int
    simulations_analyzed: int
    weaknesses: List[WeaknessAnalysis] = field(default_factory=list)
    strengths: List[StrengthAnalysis] = field(default_factory=list)

    def weakness_categories(self) -> List[str]:
        return [w.category for w in self.weaknesses]

    def strength_categories(self) -> List[str]:
        return [s.category for s in self.strengths]

    def to_dict(self) -> Dict:
        return asdict(self)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (61.5 -> 62), unlike round()."""
    return int(math.floor(value + 0.5))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def _trend(scores: List[float]) -> str:
    """
    Compare older half vs newer half. `scores` is chronological (oldest first).

    With an odd count the extra score belongs to the newer half.
    """
    midpoint = len(scores) // 2
    older = scores[:midpoint]
    newer = scores[midpoint:]
    if not older or not newer:
        return "stable"

    delta = _mean(newer) - _mean(older)
    if delta >= TREND_DELTA:
        return "improving"
    if delta <= -TREND_DELTA:
        return "declining"
    return "stable"


def category_statistics(scores: List[float]) -> CategoryStats:
    """Mean, population stddev, consistency and trend for one category (oldest first)."""
    if not scores:
        raise ValueError("scores must not be empty")

    mean = _mean(scores)
    stddev = math.sqrt(sum((s - mean) ** 2 for s in scores) / len(scores))
    consistency = max(0.0, 100.0 - stddev * 2)
    return CategoryStats(mean=mean, stddev=stddev, consistency=consistency, trend=_trend(scores))


def _priority(mean: float) -> str:
    if mean < HIGH_PRIORITY_BELOW:
        return "high"
    if mean < MEDIUM_PRIORITY_BELOW:
        return "medium"
    return "low"


def classify_categories(
    score_lists: Dict[str, List[float]],
) -> Tuple[List[WeaknessAnalysis], List[StrengthAnalysis]]:
    """
    Classify each category's chronological score list.

    Returns weaknesses sorted by priority (high first) then gap (largest
    first), and strengths in category insertion order.
    """
    weaknesses: List[WeaknessAnalysis] = []
    strengths: List[StrengthAnalysis] = []

    for category, scores in score_lists.items():
        if not scores:
            continue
        stats = category_statistics(scores)

        if stats.mean < WEAKNESS_THRESHOLD:
            weaknesses.append(WeaknessAnalysis(
                category=category,
                current_score=round_half_up(stats.mean),
                gap=round_half_up(WEAKNESS_THRESHOLD - stats.mean),
                priority=_priority(stats.mean),
                trend=stats.trend,
            ))
        elif stats.mean >= STRENGTH_THRESHOLD:
            strengths.append(StrengthAnalysis(
                category=category,
                current_score=round_half_up(stats.mean),
                consistency=round_half_up(stats.consistency),
            ))

    weaknesses.sort(key=lambda w: (PRIORITY_ORDER[w.priority], -w.gap))
    return weaknesses, strengths


def collect_category_scores(simulations: Iterable[Simulation]) -> Dict[str, List[float]]:
    """
    Gather per-category scores in the order given.

    Simulations without category scores are skipped; non-numeric values are
    ignored.
    """
    score_lists: Dict[str, List[float]] = {}
    for sim in simulations:
        if not sim.category_scores:
            continue
        for category, score in sim.category_scores.items():
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                continue
            score_lists.setdefault(category, []).append(float(score))
    return score_lists


def recent_completed_simulations(db: Session, user_id: int, limit: int) -> List[Simulation]:
    """Completed, non-practice simulations for a user, newest first."""
    return (
        db.query(Simulation)
        .filter(
            Simulation.user_id == user_id,
            Simulation.status == "completed",
            Simulation.is_practice_mode.is_(False),
        )
        .order_by(Simulation.completed_at.desc(), Simulation.id.desc())
        .limit(limit)
        .all()
    )


def analyze_agent_performance(db: Session, user_id: int) -> PerformanceAnalysis:
    """
    Analyze an agent's last 10 scored simulations.

    Raises:
        InsufficientDataError: fewer than 3 qualifying simulations.
    """
    recent = recent_completed_simulations(db, user_id, SAMPLE_SIZE)

    if len(recent) < MIN_SIMULATIONS:
        raise InsufficientDataError(
            f"Not enough simulations to analyze performance: {len(recent)} completed, "
            f"at least {MIN_SIMULATIONS} required."
        )

    chronological = list(reversed(recent))
    weaknesses, strengths = classify_categories(collect_category_scores(chronological))

    logger.debug(
        "Analyzed user %s: %d simulations, %d weaknesses, %d strengths",
        user_id, len(recent), len(weaknesses), len(strengths),
    )

    return PerformanceAnalysis(
        user_id=user_id,
        simulations_analyzed=len(recent),
        weaknesses=weaknesses,
        strengths=strengths,
    )


def try_analyze_agent_performance(db: Session, user_id: int) -> Optional[PerformanceAnalysis]:
    """Same as analyze_agent_performance but returns None on insufficient data."""
    try:
        return analyze_agent_performance(db, user_id)
    except InsufficientDataError:
        return None
