"""
Staff leaderboard, demo seed command and app configuration.
"""
import pytest

from grievance_desk import create_app
from grievance_desk.models.category import Category
from grievance_desk.models.tenant import StaffMember, Tenant
from grievance_desk.models.workflow import WorkflowTemplate
from grievance_desk.services.seed_service import DEMO_TENANT_SLUG, seed_demo


# ═════════════════════════════════════════════════════════════════════════
# STAFF
# ═════════════════════════════════════════════════════════════════════════

class TestStaff:
    def test_create_staff(self, client, headers, tenant):
        res = client.post("/api/v1/staff", json={"name": "Anil Rao", "role": "supervisor"}, headers=headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["tenant_id"] == tenant.id
        assert body["points"] == 0
        assert body["task_type_history"] == {}

    def test_invalid_role(self, client, headers):
        res = client.post("/api/v1/staff", json={"name": "Anil", "role": "mayor"}, headers=headers)
        assert res.status_code == 400

    def test_leaderboard_ranks_by_points(self, client, headers, tenant, make_headers, water_category):
        low = client.post("/api/v1/staff", json={"name": "Bina"}, headers=headers).get_json()
        high = client.post("/api/v1/staff", json={"name": "Chetan"}, headers=headers).get_json()

        for actor, priority in ((high["id"], "high"), (low["id"], "low"), (high["id"], "medium")):
            hdrs = make_headers(tenant.id, actor, "staff")
            task = client.post("/api/v1/tasks", json={"title": "Query", "category": "water", "priority": priority},
                               headers=hdrs).get_json()
            client.post(f"/api/v1/tasks/{task['id']}/complete", json={}, headers=hdrs)

        board = client.get("/api/v1/staff/leaderboard", headers=headers).get_json()
        assert [(row["rank"], row["name"], row["points"]) for row in board[:2]] == [
            (1, "Chetan", 30),
            (2, "Bina", 5),
        ]
        assert board[0]["tasks_completed"] == 2
        assert board[0]["task_type_history"] == {"water": 2}

    def test_leaderboard_limit(self, client, headers):
        for name in ("A", "B", "C"):
            client.post("/api/v1/staff", json={"name": name}, headers=headers)
        assert len(client.get("/api/v1/staff/leaderboard?limit=2", headers=headers).get_json()) == 2


# ═════════════════════════════════════════════════════════════════════════
# SEED
# ═════════════════════════════════════════════════════════════════════════

class TestSeedDemo:
    def test_seed_creates_demo_office(self):
        summary = seed_demo()

        tenant = Tenant.query.filter_by(slug=DEMO_TENANT_SLUG).one()
        assert summary["tenant_id"] == tenant.id
        assert summary["created"] == {"tenant": 1, "categories": 5, "workflows": 1, "staff": 1}
        assert Category.query_for_tenant(tenant.id).count() == 5

        template = WorkflowTemplate.query.filter_by(subcategory="Pipe Leak").one()
        assert template.sla_days == 3
        assert [s.title for s in template.steps] == [
            "Inspect leak site", "Repair pipe", "Verify supply restored",
        ]

    def test_seed_is_idempotent(self):
        seed_demo()
        summary = seed_demo()
        assert summary["created"] == {"tenant": 0, "categories": 0, "workflows": 0, "staff": 0}
        assert StaffMember.query.count() == 1

    def test_cli_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed-demo"])
        assert result.exit_code == 0
        assert Tenant.query.filter_by(slug=DEMO_TENANT_SLUG).count() == 1

    def test_seeded_office_runs_pipe_leak_flow(self, client, make_headers):
        summary = seed_demo()
        hdrs = make_headers(summary["tenant_id"], "1", "admin")
        task = client.post(
            "/api/v1/tasks",
            json={"title": "Leak at Gandhi Nagar", "category": "water", "sub_category": "Pipe Leak"},
            headers=hdrs,
        ).get_json()

        assert len(task["steps"]) == 3
        body = client.post(
            f"/api/v1/tasks/{task['id']}/steps/{task['steps'][0]['id']}/complete", json={}, headers=hdrs,
        ).get_json()
        assert body["task"]["progress"] == 33


# ═════════════════════════════════════════════════════════════════════════
# CONFIG
# ═════════════════════════════════════════════════════════════════════════

class TestConfig:
    def test_testing_config(self, app):
        assert app.config["TESTING"] is True
        assert app.config["RATELIMIT_ENABLED"] is False

    def test_production_requires_database_url(self, monkeypatch):
        from grievance_desk.config import ProductionConfig

        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_app("production")

    def test_unknown_route_is_json_404(self, client, headers):
        res = client.get("/api/v1/nowhere", headers=headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
