"""
Category registry and workflow template API tests.

Tests cover:
  - Category CRUD, slug rules, reserved sub-category labels
  - Delete guard while tasks reference the category
  - Template creation, scope uniqueness, sub-category validation
  - GET /workflows/resolve preview (exact → all → none)
"""
import pytest

PIPE_LEAK_PAYLOAD = {
    "category": "water",
    "subcategory": "Pipe Leak",
    "name": "Pipe Leak",
    "sla_days": 3,
    "steps": [
        {"title": "Inspect site", "description": "Assess the leak"},
        {"title": "Repair pipe", "duration_minutes": 240},
        {"title": "Send photo", "required": False},
    ],
}


@pytest.fixture()
def category(client, headers):
    res = client.post(
        "/api/v1/categories",
        json={"value": "water", "label": "Water Supply", "subcategories": ["Pipe Leak", "No Water Supply"]},
        headers=headers,
    )
    assert res.status_code == 201
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════
# CATEGORIES
# ═════════════════════════════════════════════════════════════════════════

class TestCategories:
    def test_create_and_list(self, client, headers, category, tenant):
        assert category["value"] == "water"
        assert category["tenant_id"] == tenant.id
        assert category["subcategories"] == ["Pipe Leak", "No Water Supply"]

        res = client.get("/api/v1/categories", headers=headers)
        assert [c["value"] for c in res.get_json()] == ["water"]

    def test_duplicate_slug_is_409(self, client, headers, category):
        res = client.post("/api/v1/categories", json={"value": "water", "label": "Again"}, headers=headers)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    @pytest.mark.parametrize("value", ["Water", "9lives", "road-works", ""])
    def test_invalid_slug_is_400(self, client, headers, value):
        res = client.post("/api/v1/categories", json={"value": value, "label": "X"}, headers=headers)
        assert res.status_code == 400
        assert "value" in res.get_json()["details"]["fields"]

    @pytest.mark.parametrize("subcategories", [["all"], ["None"], ["Leak", "Leak"], "Leak"])
    def test_invalid_subcategories_are_400(self, client, headers, subcategories):
        res = client.post(
            "/api/v1/categories",
            json={"value": "water", "label": "Water", "subcategories": subcategories},
            headers=headers,
        )
        assert res.status_code == 400
        assert "subcategories" in res.get_json()["details"]["fields"]

    def test_update_label_and_subcategories(self, client, headers, category):
        res = client.put(
            f"/api/v1/categories/{category['id']}",
            json={"label": "Water & Sewage", "subcategories": ["Pipe Leak"]},
            headers=headers,
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["label"] == "Water & Sewage"
        assert body["subcategories"] == ["Pipe Leak"]
        assert body["value"] == "water"

    def test_slug_is_immutable(self, client, headers, category):
        res = client.put(f"/api/v1/categories/{category['id']}", json={"value": "sewage"}, headers=headers)
        assert res.status_code == 400

    def test_delete_unused_category_removes_templates(self, client, headers, category):
        created = client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers).get_json()

        res = client.delete(f"/api/v1/categories/{category['id']}", headers=headers)
        assert res.status_code == 200
        assert client.get(f"/api/v1/categories/{category['id']}", headers=headers).status_code == 404
        assert client.get(f"/api/v1/workflows/{created['id']}", headers=headers).status_code == 404

    def test_delete_category_in_use_is_409(self, client, headers, category):
        client.post("/api/v1/tasks", json={"title": "Leak", "category": "water"}, headers=headers)

        res = client.delete(f"/api/v1/categories/{category['id']}", headers=headers)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_STATE"
        assert body["details"]["task_count"] == 1


# ═════════════════════════════════════════════════════════════════════════
# WORKFLOW TEMPLATES
# ═════════════════════════════════════════════════════════════════════════

class TestWorkflowTemplates:
    def test_create_template_with_steps(self, client, headers, category):
        res = client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["category"] == "water"
        assert body["subcategory"] == "Pipe Leak"
        assert body["sla_days"] == 3
        assert [(s["sequence"], s["title"], s["required"]) for s in body["steps"]] == [
            (1, "Inspect site", True),
            (2, "Repair pipe", True),
            (3, "Send photo", False),
        ]

    def test_subcategory_defaults_to_all(self, client, headers, category):
        payload = {"category": "water", "steps": [{"title": "Call resident"}]}
        body = client.post("/api/v1/workflows", json=payload, headers=headers).get_json()
        assert body["subcategory"] == "all"

    def test_one_template_per_scope(self, client, headers, category):
        client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers)
        res = client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers)
        assert res.status_code == 409

    def test_subcategory_must_belong_to_category(self, client, headers, category):
        payload = dict(PIPE_LEAK_PAYLOAD, subcategory="Potholes")
        res = client.post("/api/v1/workflows", json=payload, headers=headers)
        assert res.status_code == 422

    def test_unknown_category_is_404(self, client, headers, tenant):
        res = client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers)
        assert res.status_code == 404

    def test_steps_are_required(self, client, headers, category):
        res = client.post("/api/v1/workflows", json={"category": "water", "steps": []}, headers=headers)
        assert res.status_code == 400
        assert "steps" in res.get_json()["details"]["fields"]

    def test_overlong_step_title_rejected(self, client, headers, category):
        payload = {"category": "water", "steps": [{"title": "Inspect"}, {"title": "x" * 301}]}
        res = client.post("/api/v1/workflows", json=payload, headers=headers)
        assert res.status_code == 400
        assert "steps[2].title" in res.get_json()["details"]["fields"]

    def test_duplicate_sequences_rejected(self, client, headers, category):
        payload = {
            "category": "water",
            "steps": [{"title": "A", "sequence": 1}, {"title": "B", "sequence": 1}],
        }
        res = client.post("/api/v1/workflows", json=payload, headers=headers)
        assert res.status_code == 400

    def test_list_filtered_by_category(self, client, headers, category):
        client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers)
        client.post("/api/v1/categories", json={"value": "roads", "label": "Roads"}, headers=headers)
        client.post("/api/v1/workflows", json={"category": "roads", "steps": [{"title": "Survey"}]},
                    headers=headers)

        everything = client.get("/api/v1/workflows", headers=headers).get_json()
        water_only = client.get("/api/v1/workflows?category=water", headers=headers).get_json()
        assert len(everything) == 2
        assert [t["subcategory"] for t in water_only] == ["Pipe Leak"]


class TestResolvePreview:
    @pytest.fixture()
    def templates(self, client, headers, category):
        exact = client.post("/api/v1/workflows", json=PIPE_LEAK_PAYLOAD, headers=headers).get_json()
        catch_all = client.post(
            "/api/v1/workflows", json={"category": "water", "steps": [{"title": "Triage"}]}, headers=headers,
        ).get_json()
        return exact, catch_all

    def test_exact_match(self, client, headers, templates):
        exact, _ = templates
        body = client.get("/api/v1/workflows/resolve", headers=headers,
                          query_string={"category": "water", "sub_category": "Pipe Leak"}).get_json()
        assert body["matched_scope"] == "exact"
        assert body["workflow"]["id"] == exact["id"]

    def test_catch_all_fallback(self, client, headers, templates):
        _, catch_all = templates
        body = client.get("/api/v1/workflows/resolve", headers=headers,
                          query_string={"category": "water", "sub_category": "No Water Supply"}).get_json()
        assert body["matched_scope"] == "all"
        assert body["workflow"]["id"] == catch_all["id"]

    def test_no_template(self, client, headers, category):
        body = client.get("/api/v1/workflows/resolve?category=water", headers=headers).get_json()
        assert body["matched_scope"] is None
        assert body["workflow"] is None

    def test_category_is_required(self, client, headers, category):
        assert client.get("/api/v1/workflows/resolve", headers=headers).status_code == 400
