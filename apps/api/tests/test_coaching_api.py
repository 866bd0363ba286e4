"""
API tests for performance analysis, coaching plans and buddy pairing.
"""
from conftest import auth_headers, scores


def _weak_agent(make_user, make_simulation, supervisor=None):
    agent = make_user(supervisor=supervisor)
    for _ in range(3):
        make_simulation(agent, scores(empathy=55, protocol=62, clarity=80, resolution=80, confidence=80))
    return agent


class TestPerformanceAnalysisEndpoint:
    def test_own_analysis(self, client, make_user, make_simulation):
        agent = _weak_agent(make_user, make_simulation)

        response = client.get("/v1/coaching/analysis", headers=auth_headers(agent))

        assert response.status_code == 200
        body = response.json()
        assert body["simulations_analyzed"] == 3
        assert [w["category"] for w in body["weaknesses"]] == ["empathy", "protocol"]
        assert body["weaknesses"][0]["priority"] == "high"

    def test_insufficient_data(self, client, make_user, make_simulation):
        agent = make_user()
        make_simulation(agent, scores())

        response = client.get("/v1/coaching/analysis", headers=auth_headers(agent))

        assert response.status_code == 400
        assert response.json()["error_code"] == "INSUFFICIENT_DATA"

    def test_agent_cannot_analyze_another_agent(self, client, make_user, make_simulation):
        agent = _weak_agent(make_user, make_simulation)
        other = make_user()

        response = client.get(f"/v1/coaching/analysis?user_id={agent.id}", headers=auth_headers(other))

        assert response.status_code == 403

    def test_supervisor_analyzes_report(self, client, make_user, make_simulation):
        supervisor = make_user(role="supervisor")
        agent = _weak_agent(make_user, make_simulation, supervisor=supervisor)

        response = client.get(f"/v1/coaching/analysis?user_id={agent.id}", headers=auth_headers(supervisor))

        assert response.status_code == 200
        assert response.json()["user_id"] == agent.id

    def test_team_supervisor_analyzes_team_member(self, client, make_user, make_simulation,
                                                  make_team_assignment):
        supervisor = make_user(role="supervisor")
        agent = _weak_agent(make_user, make_simulation)
        make_team_assignment(supervisor, team_name="Equipo Norte")
        make_team_assignment(agent, team_name="Equipo Norte")

        response = client.get(f"/v1/coaching/analysis?user_id={agent.id}", headers=auth_headers(supervisor))

        assert response.status_code == 200


class TestCoachingPlanEndpoints:
    def test_generate_read_and_replace(self, client, make_user, make_simulation):
        agent = _weak_agent(make_user, make_simulation)

        created = client.post("/v1/coaching/plan", headers=auth_headers(agent))
        assert created.status_code == 201
        plan = created.json()
        assert plan["status"] == "active"
        assert plan["priority_areas"] == ["empathy", "protocol"]
        assert plan["progress"] == 0

        active = client.get("/v1/coaching/plan", headers=auth_headers(agent))
        assert active.json()["id"] == plan["id"]

        replacement = client.post("/v1/coaching/plan", headers=auth_headers(agent)).json()
        history = client.get("/v1/coaching/plans", headers=auth_headers(agent)).json()
        statuses = {p["id"]: p["status"] for p in history}
        assert statuses == {plan["id"]: "cancelled", replacement["id"]: "active"}

    def test_no_active_plan(self, client, make_user):
        agent = make_user()

        response = client.get("/v1/coaching/plan", headers=auth_headers(agent))

        assert response.status_code == 200
        assert response.json() is None

    def test_no_weaknesses(self, client, make_user, make_simulation):
        agent = make_user()
        for _ in range(3):
            make_simulation(agent, scores(90, 90, 90, 90, 90))

        response = client.post("/v1/coaching/plan", headers=auth_headers(agent))

        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_WEAKNESSES"

    def test_cancel(self, client, make_user, make_simulation):
        agent = _weak_agent(make_user, make_simulation)
        other = make_user()
        plan = client.post("/v1/coaching/plan", headers=auth_headers(agent)).json()

        assert client.post(f"/v1/coaching/plans/{plan['id']}/cancel",
                           headers=auth_headers(other)).status_code == 404

        response = client.post(f"/v1/coaching/plans/{plan['id']}/cancel", headers=auth_headers(agent))
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"


class TestBuddyEndpoints:
    def test_pair_lifecycle(self, client, make_user):
        agent = make_user(name="Ana")
        buddy = make_user(name="Bruno")

        created = client.post("/v1/coaching/buddies", json={"buddy_id": buddy.id, "match_score": 70},
                              headers=auth_headers(agent))
        assert created.status_code == 201
        pair = created.json()
        assert pair["buddy_user_id"] == buddy.id
        assert pair["target_weeks"] == 4

        mine = client.get("/v1/coaching/buddies/me", headers=auth_headers(buddy)).json()
        assert mine["buddy_name"] == "Ana"

        goal = client.patch(f"/v1/coaching/buddies/{pair['id']}/goal",
                            json={"shared_goal": "Dominar reclamos"}, headers=auth_headers(buddy))
        assert goal.json()["shared_goal"] == "Dominar reclamos"

        ended = client.post(f"/v1/coaching/buddies/{pair['id']}/end", headers=auth_headers(agent))
        assert ended.json()["status"] == "completed"
        assert client.get("/v1/coaching/buddies/me", headers=auth_headers(agent)).json() is None

    def test_pairing_errors(self, client, make_user):
        agent = make_user()
        buddy = make_user()
        third = make_user()

        assert client.post("/v1/coaching/buddies", json={"buddy_id": agent.id},
                           headers=auth_headers(agent)).status_code == 400
        assert client.post("/v1/coaching/buddies", json={"buddy_id": 999},
                           headers=auth_headers(agent)).status_code == 404

        client.post("/v1/coaching/buddies", json={"buddy_id": buddy.id}, headers=auth_headers(agent))
        conflict = client.post("/v1/coaching/buddies", json={"buddy_id": buddy.id}, headers=auth_headers(third))
        assert conflict.status_code == 409

    def test_outsider_cannot_touch_pair(self, client, make_user):
        agent, buddy, outsider = make_user(), make_user(), make_user()
        pair = client.post("/v1/coaching/buddies", json={"buddy_id": buddy.id}, headers=auth_headers(agent)).json()

        response = client.post(f"/v1/coaching/buddies/{pair['id']}/end", headers=auth_headers(outsider))

        assert response.status_code == 404

    def test_candidates(self, client, make_user, make_simulation):
        agent = _weak_agent(make_user, make_simulation)
        mentor = make_user(name="Mentor")
        for _ in range(3):
            make_simulation(mentor, scores(empathy=90, protocol=50))

        response = client.get("/v1/coaching/buddies/candidates", headers=auth_headers(agent))

        assert response.status_code == 200
        candidates = response.json()
        assert candidates[0]["user_id"] == mentor.id
        assert "Strong in empathy (your weakness)" in candidates[0]["match_reasons"]
