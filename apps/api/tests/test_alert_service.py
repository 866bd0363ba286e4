"""
Tests for supervisor alert rules and alert lifecycle.
"""
from unittest.mock import patch

import pytest

from conftest import scores
from core.exceptions import AlertTransitionError
from models import CoachingAlert
from services import alert_service
from services.alert_service import (
    acknowledge_alert,
    check_improvement,
    check_low_performance,
    check_milestone,
    check_stagnation,
    get_supervisor_id,
    list_alerts,
    pending_alert_count,
    resolve_alert,
    run_alert_checks,
)


def _overall_only(make_simulation, agent, *overall_scores):
    return [make_simulation(agent, scores(), overall_score=value) for value in overall_scores]


def _alerts(db_session, user_id, alert_type=None):
    query = db_session.query(CoachingAlert).filter(CoachingAlert.user_id == user_id)
    if alert_type:
        query = query.filter(CoachingAlert.type == alert_type)
    return query.all()


class TestLowPerformance:
    def test_three_low_scores_raise_high_alert(self, db_session, make_user, make_simulation):
        supervisor = make_user(role="supervisor")
        agent = make_user(supervisor=supervisor)
        sims = _overall_only(make_simulation, agent, 80, 55, 52, 58)

        alert = check_low_performance(db_session, agent.id)

        assert alert.severity == "high"
        assert alert.supervisor_id == supervisor.id
        assert alert.alert_metadata["avg_score"] == 55
        assert alert.alert_metadata["simulation_ids"] == [sims[3].id, sims[2].id, sims[1].id]
        assert "55%" in alert.message

    def test_critical_below_fifty(self, db_session, make_user, make_simulation):
        agent = make_user()
        _overall_only(make_simulation, agent, 40, 45, 50)

        assert check_low_performance(db_session, agent.id).severity == "critical"

    def test_one_passing_score_prevents_alert(self, db_session, make_user, make_simulation):
        agent = make_user()
        _overall_only(make_simulation, agent, 40, 60, 40)

        assert check_low_performance(db_session, agent.id) is None

    def test_needs_three_simulations(self, db_session, make_user, make_simulation):
        agent = make_user()
        _overall_only(make_simulation, agent, 30, 30)

        assert check_low_performance(db_session, agent.id) is None


class TestStagnation:
    def test_flat_scores_over_seven_sessions(self, db_session, make_user, make_simulation):
        agent = make_user()
        # oldest 3: 70, 70, 70 / skipped: 90 / newest 3: 71, 72, 71
        _overall_only(make_simulation, agent, 70, 70, 70, 90, 71, 72, 71)

        alert = check_stagnation(db_session, agent.id)

        assert alert.type == "stagnation"
        assert alert.severity == "medium"
        assert alert.alert_metadata["old_avg"] == 70
        assert alert.alert_metadata["new_avg"] == 71
        assert alert.alert_metadata["improvement"] == 1

    def test_needs_seven_sessions(self, db_session, make_user, make_simulation):
        agent = make_user()
        _overall_only(make_simulation, agent, 70, 70, 70, 70, 70, 70)

        assert check_stagnation(db_session, agent.id) is None

    def test_three_point_move_is_not_stagnation(self, db_session, make_user, make_simulation):
        agent = make_user()
        _overall_only(make_simulation, agent, 70, 70, 70, 70, 73, 73, 73)

        assert check_stagnation(db_session, agent.id) is None


class TestImprovement:
    def test_fifteen_points_over_prior_mean(self, db_session, make_user, make_simulation):
        agent = make_user()
        for value in (55, 60, 65):
            make_simulation(agent, scores(empathy=value))
        current = make_simulation(agent, scores(empathy=80))

        alerts = check_improvement(db_session, agent.id, current)

        assert len(alerts) == 1
        assert alerts[0].severity == "low"
        assert alerts[0].alert_metadata == {
            "category": "empathy",
            "previous_avg": 60,
            "current_score": 80,
            "improvement": 20,
            "pattern": "significant_improvement",
        }

    def test_fourteen_points_is_not_enough(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(empathy=60))
        current = make_simulation(agent, scores(empathy=74))

        assert check_improvement(db_session, agent.id, current) == []

    def test_needs_three_prior_sessions(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(2):
            make_simulation(agent, scores(empathy=40))
        current = make_simulation(agent, scores(empathy=90))

        assert check_improvement(db_session, agent.id, current) == []

    def test_only_five_prior_sessions_count(self, db_session, make_user, make_simulation):
        agent = make_user()
        make_simulation(agent, scores(clarity=0))
        for _ in range(5):
            make_simulation(agent, scores(clarity=70))
        current = make_simulation(agent, scores(clarity=80))

        assert check_improvement(db_session, agent.id, current) == []


class TestRunAlertChecks:
    def test_failing_rule_does_not_stop_the_others(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(empathy=50), overall_score=40)
        current = make_simulation(agent, scores(empathy=90), overall_score=45)

        with patch.object(alert_service, "check_stagnation", side_effect=RuntimeError("boom")):
            run_alert_checks(db_session, agent.id, current.id)

        assert len(_alerts(db_session, agent.id, "low_performance")) == 1
        assert len(_alerts(db_session, agent.id, "improvement")) == 1

    def test_practice_simulations_are_skipped(self, db_session, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(), overall_score=30)
        practice = make_simulation(agent, scores(), overall_score=30, is_practice_mode=True)

        run_alert_checks(db_session, agent.id, practice.id)

        assert _alerts(db_session, agent.id) == []

    def test_unknown_simulation(self, db_session, make_user):
        agent = make_user()
        run_alert_checks(db_session, agent.id, 999)
        assert _alerts(db_session, agent.id) == []


class TestMilestones:
    def test_level_up_message(self, db_session, make_user):
        agent = make_user()

        alert = check_milestone(db_session, agent.id, "level_up", {"new_level": 5})

        assert alert.type == "milestone"
        assert "level 5" in alert.message
        assert alert.alert_metadata == {"milestone_type": "level_up", "new_level": 5}

    def test_unknown_milestone_ignored(self, db_session, make_user):
        agent = make_user()
        assert check_milestone(db_session, agent.id, "first_login") is None


class TestAlertLifecycle:
    def _alert(self, db_session, make_user):
        supervisor = make_user(role="supervisor")
        agent = make_user(supervisor=supervisor)
        return check_milestone(db_session, agent.id, "coaching_plan_completed"), supervisor

    def test_pending_to_acknowledged_to_resolved(self, db_session, make_user):
        alert, _ = self._alert(db_session, make_user)

        acknowledged = acknowledge_alert(db_session, alert)
        assert acknowledged.status == "acknowledged"
        assert acknowledged.acknowledged_at is not None

        resolved = resolve_alert(db_session, alert)
        assert resolved.status == "resolved"
        assert resolved.resolved_at is not None

    @pytest.mark.parametrize("steps", [["resolve"], ["acknowledge", "acknowledge"],
                                       ["acknowledge", "resolve", "resolve"]])
    def test_illegal_transitions(self, db_session, make_user, steps):
        alert, _ = self._alert(db_session, make_user)
        actions = {"acknowledge": acknowledge_alert, "resolve": resolve_alert}

        with pytest.raises(AlertTransitionError):
            for step in steps:
                actions[step](db_session, alert)

    def test_visibility(self, db_session, make_user):
        alert, supervisor = self._alert(db_session, make_user)
        other_supervisor = make_user(role="supervisor")
        manager = make_user(role="manager")

        assert [a.id for a in list_alerts(db_session, supervisor)] == [alert.id]
        assert list_alerts(db_session, other_supervisor) == []
        assert [a.id for a in list_alerts(db_session, manager)] == [alert.id]
        assert pending_alert_count(db_session, supervisor) == 1
        assert pending_alert_count(db_session, other_supervisor) == 0

        acknowledge_alert(db_session, alert)
        assert pending_alert_count(db_session, supervisor) == 0
        assert list_alerts(db_session, supervisor, status="pending") == []


def test_supervisor_falls_back_to_team_assignment(db_session, make_user, make_team_assignment):
    lead = make_user(role="supervisor")
    agent = make_user()
    make_team_assignment(agent, supervisor=lead)

    assert get_supervisor_id(db_session, agent.id) == lead.id
