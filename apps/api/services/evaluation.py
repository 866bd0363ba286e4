"""
Simulation Evaluation

Scores a finished conversation per category with the LLM and derives the
overall score, points and badges. Also role-plays the client during a
simulation.

Both entry points always return a usable result: any LLM failure yields a
fixed fallback instead of an exception.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from core.config import settings
from models import Scenario, SCORE_CATEGORIES
from services.llm_client import LLMClient, LLMError, get_llm_client
from services.performance_analysis import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_SCORE = 75
CONFIDENCE_WEIGHT = 20  # percent, not configurable per scenario
WEIGHTED_CATEGORIES = ("empathy", "clarity", "protocol", "resolution")

FALLBACK_POINTS = 50
FALLBACK_FEEDBACK = (
    "The automatic evaluation could not be completed. "
    "Please ask your supervisor for a manual review."
)
FALLBACK_CLIENT_RESPONSE = "Entiendo. ¿Hay algo más que puedas hacer para ayudarme?"


@dataclass
class EvaluationResult:
    overall_score: int
    category_scores: Dict[str, int]
    feedback: str
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    points_earned: int = 0
    badges_earned: List[str] = field(default_factory=list)
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce_score(value: Any) -> float:
    """Numeric score in [0, 100]; missing, zero or non-numeric becomes the default."""
    if isinstance(value, bool):
        return DEFAULT_CATEGORY_SCORE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_CATEGORY_SCORE
    if not isinstance(value, (int, float)) or math.isnan(value) or value == 0:
        return DEFAULT_CATEGORY_SCORE
    return max(0.0, min(100.0, float(value)))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def criteria_weights(scenario: Scenario) -> Dict[str, float]:
    """
    Category weights as fractions summing to 1.

    Confidence is always 20%. The scenario's criteria are read as relative
    weights and scaled to share the remaining 80%; a scenario without
    usable criteria weights its four categories equally.
    """
    criteria = scenario.evaluation_criteria or {}
    raw = {}
    for category in WEIGHTED_CATEGORIES:
        try:
            raw[category] = max(0.0, float(criteria.get(category, 0)))
        except (TypeError, ValueError):
            raw[category] = 0.0

    total = sum(raw.values())
    criteria_share = 100 - CONFIDENCE_WEIGHT
    if total > 0:
        weights = {c: v * criteria_share / total / 100 for c, v in raw.items()}
    else:
        weights = {c: criteria_share / len(WEIGHTED_CATEGORIES) / 100 for c in raw}
    weights["confidence"] = CONFIDENCE_WEIGHT / 100
    return weights


def calculate_points(overall_score: int, complexity: int) -> int:
    base = round_half_up(overall_score * complexity)
    if overall_score >= 90:
        return base + 50
    if overall_score >= 80:
        return base + 25
    return base


def determine_badges(category_scores: Dict[str, float], overall_score: int, complexity: int) -> List[str]:
    badges = []
    if category_scores["empathy"] >= 90:
        badges.append("empathy_pro")
    if category_scores["protocol"] >= 95:
        badges.append("protocol_master")
    if category_scores["resolution"] >= 90:
        badges.append("problem_solver")
    if complexity >= 4 and overall_score >= 85:
        badges.append("crisis_handler")
    if overall_score >= 95:
        badges.append("excellence_award")
    return badges


def fallback_evaluation() -> EvaluationResult:
    return EvaluationResult(
        overall_score=DEFAULT_CATEGORY_SCORE,
        category_scores={c: DEFAULT_CATEGORY_SCORE for c in SCORE_CATEGORIES},
        feedback=FALLBACK_FEEDBACK,
        strengths=["Completed the simulation"],
        weaknesses=["A detailed evaluation could not be generated"],
        recommendations=["Try the simulation again"],
        points_earned=FALLBACK_POINTS,
        badges_earned=[],
        is_fallback=True,
    )


def format_transcript(messages: Sequence[Any]) -> str:
    """`[ROLE]: content` per line. Accepts ORM messages or dicts."""
    lines = []
    for m in messages:
        role = m["role"] if isinstance(m, dict) else m.role
        content = m["content"] if isinstance(m, dict) else m.content
        lines.append(f"[{str(role).upper()}]: {content}")
    return "\n".join(lines)


def _evaluation_prompt(scenario: Scenario) -> str:
    criteria = scenario.evaluation_criteria or {}
    return f"""You are an expert evaluator of customer-service quality in banking contact centers.
Evaluate how the agent handled this training simulation.

SCENARIO
- Title: {scenario.title}
- Category: {scenario.category}
- Complexity: {scenario.complexity}/5
- Description: {scenario.description}
- Expected ideal response: {scenario.ideal_response or "N/A"}

Score the agent 0-100 in each category:
1. empathy ({criteria.get("empathy", 0)}% of the total): emotional connection, acknowledging the client's feelings
2. clarity ({criteria.get("clarity", 0)}% of the total): clear, concise explanations without unnecessary jargon
3. protocol ({criteria.get("protocol", 0)}% of the total): banking procedures, identity verification, policy compliance
4. resolution ({criteria.get("resolution", 0)}% of the total): concrete solutions and a proper close
5. confidence ({CONFIDENCE_WEIGHT}% of the total): assurance, professionalism, handling objections

Give 2-4 specific strengths, 2-4 specific weaknesses and 2-4 actionable recommendations,
quoting the conversation where useful, and 2-3 paragraphs of constructive feedback.
Write the text fields in {settings.CLIENT_RESPONSE_LANGUAGE}.

Respond ONLY with a JSON object:
{{
  "empathy": <0-100>,
  "clarity": <0-100>,
  "protocol": <0-100>,
  "resolution": <0-100>,
  "confidence": <0-100>,
  "feedback": "<text>",
  "strengths": ["..."],
  "weaknesses": ["..."],
  "recommendations": ["..."]
}}"""


def evaluate_simulation(
    scenario: Scenario,
    messages: Sequence[Any],
    llm: Optional[LLMClient] = None,
) -> EvaluationResult:
    """
    Score a conversation against the scenario's evaluation criteria.

    Never raises for LLM problems; returns fallback_evaluation() instead.
    """
    llm = llm or get_llm_client()

    prompt_messages = [
        {"role": "system", "content": _evaluation_prompt(scenario)},
        {
            "role": "user",
            "content": (
                "CONVERSATION TRANSCRIPT:\n\n"
                f"{format_transcript(messages)}\n\n---\n\n"
                "Evaluate the agent's performance based on the transcript and the criteria above."
            ),
        },
    ]

    try:
        data = llm.chat_json(prompt_messages, model=settings.LLM_EVALUATION_MODEL)
    except LLMError as e:
        logger.warning(f"Evaluation for scenario {scenario.id} fell back to defaults: {e}")
        return fallback_evaluation()

    scores = {c: _coerce_score(data.get(c)) for c in SCORE_CATEGORIES}
    weights = criteria_weights(scenario)
    overall = min(100, max(0, round_half_up(sum(scores[c] * weights[c] for c in SCORE_CATEGORIES))))
    complexity = scenario.complexity or 1

    feedback = data.get("feedback")
    return EvaluationResult(
        overall_score=overall,
        category_scores={c: round_half_up(s) for c, s in scores.items()},
        feedback=feedback if isinstance(feedback, str) and feedback.strip() else FALLBACK_FEEDBACK,
        strengths=_string_list(data.get("strengths")),
        weaknesses=_string_list(data.get("weaknesses")),
        recommendations=_string_list(data.get("recommendations")),
        points_earned=calculate_points(overall, complexity),
        badges_earned=determine_badges(scores, overall, complexity),
    )


def generate_client_response(
    scenario: Scenario,
    history: Sequence[Any],
    last_agent_message: str,
    llm: Optional[LLMClient] = None,
) -> str:
    """Next line of the simulated client. Falls back to a fixed line on failure."""
    llm = llm or get_llm_client()
    profile = scenario.client_profile or {}

    system = f"""{scenario.system_prompt}

CLIENT PROFILE
- Emotion: {profile.get("emotion", "neutral")}
- Context: {profile.get("initial_context", "")}

INSTRUCTIONS
- Answer as the client described in the profile, keeping emotion and personality consistent
- Be realistic and natural
- If the agent solves your problem well, show satisfaction
- If the agent skips protocol or does not help, show frustration
- Keep answers short (1-3 sentences) and do not repeat information you already gave
- Answer in {settings.CLIENT_RESPONSE_LANGUAGE}"""

    user = (
        f"CONVERSATION SO FAR:\n{format_transcript(history)}\n\n"
        f"[AGENT]: {last_agent_message}\n\n"
        "Reply as the client. Your reply:"
    )

    try:
        text = llm.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            temperature=0.8,
            max_tokens=150,
        )
    except LLMError as e:
        logger.warning(f"Client response for scenario {scenario.id} fell back: {e}")
        return FALLBACK_CLIENT_RESPONSE

    return text.strip() or FALLBACK_CLIENT_RESPONSE
