"""
HTTP-level tests for the workflow, SOP catalog and health blueprints.

Checks status codes, JSON shapes and the error envelope
``{"error", "code", "details"?}`` for every domain error class.
"""

import pytest

from sopflow.models import db
from sopflow.models.workflow import WorkflowInstance

BASE = "/api/v1"


def _create(client, location_id, key="maintenance", **extra):
    body = {"sop_template_id": key, "location_id": location_id}
    body.update(extra)
    return client.post(f"{BASE}/workflows", json=body)


def _created(client, location_id, key="maintenance"):
    res = _create(client, location_id, key)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["workflow"]


def _detail(client, workflow_id):
    res = client.get(f"{BASE}/workflows/{workflow_id}")
    assert res.status_code == 200
    return res.get_json()


def _transition(client, workflow_id, task_id, status, **extra):
    return client.post(
        f"{BASE}/workflows/{workflow_id}/tasks/{task_id}/transition",
        json={"status": status, **extra},
    )


# ═════════════════════════════════════════════════════════════════════════════
# POST /workflows
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateWorkflowAPI:

    def test_create_returns_summary(self, client, location):
        res = _create(client, location, priority="HIGH")
        assert res.status_code == 201
        data = res.get_json()
        assert data["success"] is True
        wf = data["workflow"]
        assert wf["name"] == "Monthly Local SEO Maintenance"
        assert wf["type"] == "MAINTENANCE"
        assert wf["location"] == "Traditional Location"
        assert wf["client"] == "Traditional Location LLC"
        assert wf["business_type"] == "TRADITIONAL"
        assert wf["status"] == "IN_PROGRESS"
        assert wf["priority"] == "HIGH"
        assert wf["total_tasks"] == 8
        assert wf["completed_tasks"] == 0
        assert wf["progress"] == 0
        assert wf["started_at"] and wf["due_date"]

    def test_missing_fields(self, client):
        res = client.post(f"{BASE}/workflows", json={"location_id": 1})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_unknown_template(self, client, location):
        res = _create(client, location, key="nope")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_TEMPLATE_NOT_FOUND"
        assert body["details"] == {"sop_template_id": "nope"}

    def test_unknown_location(self, client):
        res = _create(client, 12345)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_non_integer_location(self, client):
        res = _create(client, "downtown")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_no_applicable_tasks(self, client, rank_rent_location):
        res = _create(client, rank_rent_location, key="rebrand")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_NO_APPLICABLE_TASKS"

    def test_non_json_body_rejected(self, client):
        res = client.post(f"{BASE}/workflows", data="x=1", content_type="text/plain")
        assert res.status_code == 415


# ═════════════════════════════════════════════════════════════════════════════
# GET /workflows, GET/DELETE /workflows/<id>
# ═════════════════════════════════════════════════════════════════════════════


class TestReadWorkflowAPI:

    def test_detail_includes_ordered_tasks(self, client, location):
        wf = _created(client, location, key="suspension")
        data = _detail(client, wf["id"])
        assert [t["order"] for t in data["tasks"]] == [1, 2, 3, 4, 5, 6, 7, 8]
        fifth = data["tasks"][4]
        assert fifth["title"] == "Submit Reinstatement Request"
        assert fifth["depends_on"] == [3, 4]
        assert fifth["status"] == "BLOCKED"

    def test_detail_missing(self, client):
        res = client.get(f"{BASE}/workflows/999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_list_with_filters_and_pagination(self, client, location, gmb_location):
        a = _created(client, location)
        b = _created(client, gmb_location, key="new-location")
        client.patch(f"{BASE}/workflows/{b['id']}", json={"action": "cancel"})

        data = client.get(f"{BASE}/workflows?status=all").get_json()
        assert data["total"] == 2

        data = client.get(f"{BASE}/workflows?status=IN_PROGRESS").get_json()
        assert [w["id"] for w in data["items"]] == [a["id"]]

        data = client.get(f"{BASE}/workflows?location_id={gmb_location}").get_json()
        assert [w["id"] for w in data["items"]] == [b["id"]]

        data = client.get(f"{BASE}/workflows?limit=1").get_json()
        assert data["total"] == 2
        assert len(data["items"]) == 1

    def test_list_empty_location_filter_is_ignored(self, client, location, gmb_location):
        _created(client, location)
        _created(client, gmb_location)
        res = client.get(f"{BASE}/workflows?location_id=&status=")
        assert res.status_code == 200
        assert res.get_json()["total"] == 2

    def test_list_bad_status(self, client):
        res = client.get(f"{BASE}/workflows?status=DONE")
        assert res.status_code == 400

    def test_delete(self, client, location):
        wf = _created(client, location)
        res = client.delete(f"{BASE}/workflows/{wf['id']}")
        assert res.status_code == 200
        assert res.get_json()["message"] == "Workflow deleted successfully"
        assert db.session.get(WorkflowInstance, wf["id"]) is None
        assert client.delete(f"{BASE}/workflows/{wf['id']}").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# PATCH /workflows/<id>
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateWorkflowAPI:

    def test_complete_with_open_tasks(self, client, location):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"action": "complete"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_INCOMPLETE_TASKS"
        assert body["details"] == {"incomplete_tasks": 8}

    def test_illegal_action(self, client, location):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"action": "start"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_ILLEGAL_TRANSITION"
        assert body["error"] == "Cannot start workflow in IN_PROGRESS status"

    def test_unknown_action(self, client, location):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"action": "archive"})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_invalid_status_transition(self, client, location):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"status": "NOT_STARTED"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_STATUS_TRANSITION"
        assert body["details"] == {
            "current_status": "IN_PROGRESS", "requested_status": "NOT_STARTED",
        }

    def test_block_with_priority(self, client, location):
        wf = _created(client, location)
        res = client.patch(
            f"{BASE}/workflows/{wf['id']}", json={"action": "block", "priority": "LOW"},
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["message"] == "Workflow block successfully"
        assert data["workflow"]["status"] == "BLOCKED"
        assert data["workflow"]["priority"] == "LOW"

    @pytest.mark.parametrize("action", [1, ["start"], {"name": "complete"}])
    def test_non_string_action(self, client, location, action):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"action": action})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
        assert _detail(client, wf["id"])["status"] == "IN_PROGRESS"

    def test_empty_patch(self, client, location):
        wf = _created(client, location)
        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


# ═════════════════════════════════════════════════════════════════════════════
# POST /workflows/<id>/tasks/<task_id>/transition
# ═════════════════════════════════════════════════════════════════════════════


class TestTaskTransitionAPI:

    def test_complete_unlocks_dependent(self, client, location):
        wf = _created(client, location)
        tasks = {t["order"]: t for t in _detail(client, wf["id"])["tasks"]}
        velocity, respond = tasks[4], tasks[5]

        res = _transition(client, wf["id"], velocity["id"], "IN_PROGRESS", assigned_to="ana")
        assert res.status_code == 200
        assert res.get_json()["task"]["assigned_to"] == "ana"

        res = _transition(client, wf["id"], velocity["id"], "COMPLETED")
        assert res.status_code == 200
        data = res.get_json()
        assert data["unlocked_task_ids"] == [respond["id"]]
        assert data["workflow"]["completed_tasks"] == 1
        assert data["workflow"]["progress"] == 12

    @pytest.mark.parametrize("assignee", [{"id": 1}, ["ana"], "x" * 101])
    def test_malformed_assignee(self, client, location, assignee):
        wf = _created(client, location)
        task = _detail(client, wf["id"])["tasks"][0]
        res = _transition(client, wf["id"], task["id"], "IN_PROGRESS", assigned_to=assignee)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
        after = _detail(client, wf["id"])["tasks"][0]
        assert after["status"] == "PENDING"
        assert after["assigned_to"] is None

    def test_status_required(self, client, location):
        wf = _created(client, location)
        res = client.post(f"{BASE}/workflows/{wf['id']}/tasks/1/transition", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_invalid_transition(self, client, location):
        wf = _created(client, location)
        task = _detail(client, wf["id"])["tasks"][0]
        res = _transition(client, wf["id"], task["id"], "COMPLETED")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_INVALID_STATUS_TRANSITION"

    def test_task_of_other_workflow(self, client, location, gmb_location):
        first = _created(client, location)
        second = _created(client, gmb_location)
        other_task = _detail(client, second["id"])["tasks"][0]
        res = _transition(client, first["id"], other_task["id"], "IN_PROGRESS")
        assert res.status_code == 404

    def test_full_run_then_complete(self, client, location):
        wf = _created(client, location)
        while True:
            pending = [
                t for t in _detail(client, wf["id"])["tasks"] if t["status"] == "PENDING"
            ]
            if not pending:
                break
            for task in pending:
                assert _transition(client, wf["id"], task["id"], "IN_PROGRESS").status_code == 200
                assert _transition(client, wf["id"], task["id"], "COMPLETED").status_code == 200

        res = client.patch(f"{BASE}/workflows/{wf['id']}", json={"action": "complete"})
        assert res.status_code == 200
        data = res.get_json()["workflow"]
        assert data["status"] == "COMPLETED"
        assert data["progress"] == 100
        assert data["completed_at"] is not None


# ═════════════════════════════════════════════════════════════════════════════
# SOP catalog + health
# ═════════════════════════════════════════════════════════════════════════════


class TestSopAndHealthAPI:

    def test_list_sops(self, client):
        res = client.get(f"{BASE}/sops")
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 4
        names = {e["key"]: e["name"] for e in data["items"]}
        assert names["suspension"] == "GBP Suspension Recovery"

    def test_get_sop_creates_and_returns_tasks(self, client):
        res = client.get(f"{BASE}/sops/new-location")
        assert res.status_code == 200
        data = res.get_json()
        assert data["type"] == "NEW_LOCATION"
        assert len(data["tasks"]) == 12
        listing = client.get(f"{BASE}/sops").get_json()["items"]
        assert next(e for e in listing if e["type"] == "NEW_LOCATION")["persisted"] is True

    def test_get_unknown_sop(self, client):
        res = client.get(f"{BASE}/sops/unknown")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_TEMPLATE_NOT_FOUND"

    @pytest.mark.parametrize("path", ["/health/ready", "/health/live"])
    def test_health(self, client, path):
        res = client.get(f"{BASE}{path}")
        assert res.status_code == 200
        assert "X-Request-ID" in res.headers
        assert "X-Request-Duration-Ms" in res.headers

    def test_live_reports_database(self, client):
        data = client.get(f"{BASE}/health/live").get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"

    def test_unknown_route_is_json_404(self, client):
        res = client.get(f"{BASE}/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"


# ═════════════════════════════════════════════════════════════════════════════
# App configuration
# ═════════════════════════════════════════════════════════════════════════════


class TestAppConfig:

    def test_limiter_storage_is_read_from_config(self, app):
        from sopflow.config import Config

        assert app.config["RATELIMIT_STORAGE_URI"] == "memory://"
        assert not hasattr(Config, "REDIS_URL")
