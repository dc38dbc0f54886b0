"""
Task API tests.

Tests cover:
  - POST /tasks with workflow attachment and SLA block
  - Step completion responses and error bodies (409 / 404 / 422)
  - Listing, filtering, pagination, soft delete
"""
import pytest


@pytest.fixture()
def task(client, headers, pipe_leak_workflow):
    res = client.post(
        "/api/v1/tasks",
        json={
            "title": "Water leaking near Gandhi Nagar",
            "category": "water",
            "sub_category": "Pipe Leak",
            "priority": "high",
            "source": "whatsapp",
            "filed_by": "R. Kumar",
        },
        headers=headers,
    )
    assert res.status_code == 201
    return res.get_json()


def _complete(client, headers, task, index):
    step_id = task["steps"][index]["id"]
    return client.post(
        f"/api/v1/tasks/{task['id']}/steps/{step_id}/complete", json={}, headers=headers,
    )


# ═════════════════════════════════════════════════════════════════════════
# CREATE / READ
# ═════════════════════════════════════════════════════════════════════════

class TestCreateAndRead:
    def test_create_returns_steps_and_sla(self, task, pipe_leak_workflow):
        assert task["status"] == "open"
        assert task["progress"] == 0
        assert task["workflow_id"] == pipe_leak_workflow.id
        assert [s["sequence"] for s in task["steps"]] == [1, 2, 3]
        assert task["sla"]["status"] == "within_sla"
        assert task["sla"]["warning_threshold"] == 80
        assert task["deadline"] is not None

    def test_create_validation_lists_fields(self, client, headers, water_category):
        res = client.post("/api/v1/tasks", json={"priority": "critical"}, headers=headers)
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert set(body["details"]["fields"]) == {"title", "category", "priority"}

    def test_unknown_category_is_404(self, client, headers, tenant):
        res = client.post("/api/v1/tasks", json={"title": "Pothole", "category": "roads"}, headers=headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Category not found"

    def test_unknown_subcategory_is_422(self, client, headers, water_category):
        res = client.post(
            "/api/v1/tasks",
            json={"title": "Dam", "category": "water", "sub_category": "Burst dam"},
            headers=headers,
        )
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_CONSTRAINT"

    def test_non_json_body_is_415(self, client, headers, water_category):
        res = client.post("/api/v1/tasks", data="title=x", headers=headers, content_type="text/plain")
        assert res.status_code == 415

    def test_get_task_with_steps(self, client, headers, task):
        res = client.get(f"/api/v1/tasks/{task['id']}", headers=headers)
        assert res.status_code == 200
        assert len(res.get_json()["steps"]) == 3

    def test_list_steps(self, client, headers, task):
        res = client.get(f"/api/v1/tasks/{task['id']}/steps", headers=headers)
        assert [s["title"] for s in res.get_json()] == ["Inspect site", "Repair pipe", "Verify supply"]

    def test_missing_task_is_404(self, client, headers, tenant):
        res = client.get("/api/v1/tasks/4242", headers=headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════
# STEP COMPLETION
# ═════════════════════════════════════════════════════════════════════════

class TestStepCompletion:
    def test_in_order_completion(self, client, headers, task, staff):
        res = _complete(client, headers, task, 0)
        assert res.status_code == 200
        body = res.get_json()
        assert body["step"]["status"] == "completed"
        assert body["step"]["completed_by"] == str(staff.id)
        assert body["task"]["status"] == "in_progress"
        assert body["task"]["progress"] == 33
        assert body["task_completed"] is False

        _complete(client, headers, task, 1)
        body = _complete(client, headers, task, 2).get_json()
        assert body["task"]["status"] == "completed"
        assert body["task"]["progress"] == 100
        assert body["task_completed"] is True
        assert body["points_awarded"] == 20
        assert body["side_effect_failures"] == []
        assert body["task"]["sla"]["status"] == "met"

    def test_sequence_violation_body(self, client, headers, task):
        res = _complete(client, headers, task, 2)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_SEQUENCE_VIOLATION"
        assert body["details"]["required_step"]["sequence"] == 1
        assert body["details"]["required_step"]["title"] == "Inspect site"

    def test_completing_twice_is_409(self, client, headers, task):
        _complete(client, headers, task, 0)
        res = _complete(client, headers, task, 0)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_ALREADY_COMPLETED"

    def test_step_of_other_task_is_404(self, client, headers, task, pipe_leak_workflow):
        other = client.post(
            "/api/v1/tasks",
            json={"title": "Second leak", "category": "water", "sub_category": "Pipe Leak"},
            headers=headers,
        ).get_json()
        step_id = other["steps"][0]["id"]
        res = client.post(f"/api/v1/tasks/{task['id']}/steps/{step_id}/complete", json={}, headers=headers)
        assert res.status_code == 404

    def test_notes_are_stored(self, client, headers, task):
        step_id = task["steps"][0]["id"]
        res = client.post(
            f"/api/v1/tasks/{task['id']}/steps/{step_id}/complete",
            json={"notes": "Valve shut off"},
            headers=headers,
        )
        assert res.get_json()["step"]["notes"] == "Valve shut off"

    def test_manual_complete_rejected_for_workflow_task(self, client, headers, task):
        res = client.post(f"/api/v1/tasks/{task['id']}/complete", json={}, headers=headers)
        assert res.status_code == 422

    def test_manual_complete_without_workflow(self, client, headers, water_category):
        created = client.post(
            "/api/v1/tasks", json={"title": "Billing query", "category": "water"}, headers=headers,
        ).get_json()
        assert created["steps"] == []

        res = client.post(f"/api/v1/tasks/{created['id']}/complete", json={}, headers=headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["task"]["status"] == "completed"
        assert body["points_awarded"] == 10

    def test_recompute(self, client, headers, task):
        _complete(client, headers, task, 0)
        res = client.post(f"/api/v1/tasks/{task['id']}/recompute", json={}, headers=headers)
        assert res.status_code == 200
        assert res.get_json()["progress"] == 33


# ═════════════════════════════════════════════════════════════════════════
# LIST / DELETE
# ═════════════════════════════════════════════════════════════════════════

class TestListAndDelete:
    def test_list_filters_and_paginates(self, client, headers, task, water_category):
        client.post("/api/v1/tasks", json={"title": "Low one", "category": "water", "priority": "low"},
                    headers=headers)

        body = client.get("/api/v1/tasks?priority=high", headers=headers).get_json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == task["id"]

        page = client.get("/api/v1/tasks?limit=1&offset=1", headers=headers).get_json()
        assert page["total"] == 2
        assert page["limit"] == 1
        assert len(page["items"]) == 1

    def test_list_rejects_unknown_status(self, client, headers, tenant):
        res = client.get("/api/v1/tasks?status=archived", headers=headers)
        assert res.status_code == 400

    def test_delete_hides_task(self, client, headers, task):
        res = client.delete(f"/api/v1/tasks/{task['id']}", headers=headers)
        assert res.status_code == 200
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=headers).status_code == 404
        assert client.get("/api/v1/tasks", headers=headers).get_json()["total"] == 0

    def test_agent_header_without_staff_record(self, client, tenant, task, make_headers):
        agent = make_headers(tenant.id, "field-agent-3", "agent")
        for step in task["steps"]:
            body = client.post(
                f"/api/v1/tasks/{task['id']}/steps/{step['id']}/complete", json={}, headers=agent,
            ).get_json()
        assert body["task"]["status"] == "completed"
        assert body["side_effect_failures"][0]["effect"] == "award_points"
