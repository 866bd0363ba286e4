"""
Tests for coaching plan generation, replacement and progress tracking.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import scores
from core.exceptions import InsufficientDataError, NoWeaknessesError
from models import CoachingAlert, CoachingPlan
from services.coaching_plan import (
    DEFAULT_WEEKLY_GOAL,
    cancel_coaching_plan,
    create_coaching_plan,
    generate_coaching_plan,
    get_active_coaching_plan,
    recommend_scenarios,
    update_coaching_progress,
)
from services.llm_client import LLMError


def _failing_llm():
    llm = MagicMock()
    llm.chat_json.side_effect = LLMError("offline")
    return llm


def _agent_with_weaknesses(make_user, make_simulation, supervisor=None):
    """Weak in empathy (high) and protocol (medium), strong elsewhere."""
    agent = make_user(supervisor=supervisor)
    for _ in range(3):
        make_simulation(agent, scores(empathy=55, protocol=62, clarity=80, resolution=80, confidence=80))
    return agent


class TestRecommendScenarios:
    def test_two_per_weakness_capped_at_five(self, db_session, make_scenario):
        complaint = [make_scenario("complaint") for _ in range(3)]
        informative = [make_scenario("informative") for _ in range(2)]
        fraud = [make_scenario("fraud") for _ in range(2)]
        make_scenario("transactional")

        recommended = recommend_scenarios(db_session, ["empathy", "clarity", "protocol", "resolution"])

        assert recommended == [
            complaint[0].id, complaint[1].id,
            informative[0].id, informative[1].id,
            fraud[0].id,
        ]

    def test_inactive_scenarios_skipped(self, db_session, make_scenario):
        make_scenario("complaint", is_active=False)
        active = make_scenario("complaint")

        assert recommend_scenarios(db_session, ["empathy"]) == [active.id]

    def test_no_duplicates_when_weaknesses_share_a_category(self, db_session, make_scenario):
        informative = make_scenario("informative")

        # unknown categories map to informative, same as clarity
        assert recommend_scenarios(db_session, ["clarity", "listening"]) == [informative.id]


class TestGenerateCoachingPlan:
    def test_insufficient_data(self, db_session, make_user, make_simulation):
        agent = make_user()
        make_simulation(agent, scores(empathy=50))

        with pytest.raises(InsufficientDataError):
            generate_coaching_plan(db_session, agent.id, llm=_failing_llm())

    def test_no_weaknesses(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(empathy=90, clarity=90, protocol=90, resolution=90, confidence=90))

        with pytest.raises(NoWeaknessesError):
            generate_coaching_plan(db_session, agent.id, llm=_failing_llm())

    def test_uses_llm_text(self, db_session, make_user, make_simulation, make_scenario):
        agent = _agent_with_weaknesses(make_user, make_simulation)
        complaint = make_scenario("complaint")
        llm = MagicMock()
        llm.chat_json.return_value = {
            "priorityAreas": ["Empatía", "Protocolo", "Cierre", "Extra"],
            "weeklyGoal": "Practicar 3 escenarios de reclamo",
            "estimatedWeeks": 12,
            "improvementStrategy": "Trabajar la validación emocional.",
            "keyFocusPoints": ["Escuchar", "Validar"],
        }

        plan = generate_coaching_plan(db_session, agent.id, llm=llm)

        assert plan.priority_areas == ["Empatía", "Protocolo", "Cierre"]
        assert plan.weekly_goal == "Practicar 3 escenarios de reclamo"
        assert plan.estimated_weeks == 8
        assert plan.improvement_strategy == "Trabajar la validación emocional."
        assert plan.key_focus_points == ["Escuchar", "Validar"]
        assert complaint.id in plan.recommended_scenarios
        assert [w["category"] for w in plan.weakness_analysis] == ["empathy", "protocol"]

    def test_llm_failure_falls_back_to_defaults(self, db_session, make_user, make_simulation):
        agent = _agent_with_weaknesses(make_user, make_simulation)

        plan = generate_coaching_plan(db_session, agent.id, llm=_failing_llm())

        assert plan.priority_areas == ["empathy", "protocol"]
        assert plan.weekly_goal == DEFAULT_WEEKLY_GOAL
        assert plan.estimated_weeks == 4
        assert plan.recommended_scenarios == []


class TestCreateCoachingPlan:
    def test_replaces_active_plan(self, db_session, make_user, make_simulation):
        agent = _agent_with_weaknesses(make_user, make_simulation)

        first = create_coaching_plan(db_session, agent.id, llm=_failing_llm())
        second = create_coaching_plan(db_session, agent.id, llm=_failing_llm())

        db_session.refresh(first)
        assert first.status == "cancelled"
        assert second.status == "active"
        assert get_active_coaching_plan(db_session, agent.id).id == second.id
        assert second.expires_at == second.generated_at + timedelta(days=28)

    def test_failed_generation_keeps_current_plan(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(empathy=90, clarity=90, protocol=90, resolution=90, confidence=90))
        existing = CoachingPlan(user_id=agent.id, status="active", weakness_analysis=[],
                                strengths_analysis=[], priority_areas=[], recommended_scenarios=[],
                                completed_scenarios=[])
        db_session.add(existing)
        db_session.commit()

        with pytest.raises(NoWeaknessesError):
            create_coaching_plan(db_session, agent.id, llm=_failing_llm())

        db_session.refresh(existing)
        assert existing.status == "active"


class TestCoachingProgress:
    def _plan(self, db_session, user_id, recommended):
        plan = CoachingPlan(user_id=user_id, status="active", weakness_analysis=[],
                            strengths_analysis=[], priority_areas=["empathy"],
                            recommended_scenarios=recommended, completed_scenarios=[])
        db_session.add(plan)
        db_session.commit()
        return plan

    def test_progress_and_completion_milestone(self, db_session, make_user):
        supervisor = make_user(role="supervisor")
        agent = make_user(supervisor=supervisor)
        plan = self._plan(db_session, agent.id, [11, 12, 13])

        updated = update_coaching_progress(db_session, agent.id, 11)
        assert updated.progress == 33
        assert updated.completed_scenarios == [11]

        # repeats and unrelated scenarios change nothing
        assert update_coaching_progress(db_session, agent.id, 11) is None
        assert update_coaching_progress(db_session, agent.id, 99) is None

        update_coaching_progress(db_session, agent.id, 12)
        done = update_coaching_progress(db_session, agent.id, 13)

        assert done.progress == 100
        assert done.status == "completed"
        alert = db_session.query(CoachingAlert).filter(CoachingAlert.user_id == agent.id).one()
        assert alert.type == "milestone"
        assert alert.supervisor_id == supervisor.id
        assert alert.alert_metadata["milestone_type"] == "coaching_plan_completed"
        assert alert.alert_metadata["plan_id"] == plan.id

    def test_no_active_plan(self, db_session, make_user):
        agent = make_user()
        assert update_coaching_progress(db_session, agent.id, 1) is None

    def test_cancel_only_own_plan(self, db_session, make_user):
        agent = make_user()
        other = make_user()
        plan = self._plan(db_session, agent.id, [1])

        assert cancel_coaching_plan(db_session, other.id, plan.id) is None
        assert cancel_coaching_plan(db_session, agent.id, plan.id).status == "cancelled"
