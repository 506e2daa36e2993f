"""
Service-level tests for ``WorkflowEngine`` against the test database.

Covers creation (template resolve → filter → schedule), workflow and task
transitions with dependency unlocking, listing and deletion, and the
end-to-end maintenance scenario for a rank-and-rent account.
"""

from datetime import datetime, timedelta, timezone

import pytest

from sopflow.core.exceptions import (
    IllegalTransitionError,
    IncompleteTasksRemainError,
    InvalidStatusTransitionError,
    NoApplicableTasksError,
    NotFoundError,
    TemplateNotFoundError,
    ValidationError,
)
from sopflow.models import db
from sopflow.models.enums import BusinessType, Priority, SOPType, TaskStatus, WorkflowStatus
from sopflow.models.sop import SOPTemplate
from sopflow.models.workflow import TaskInstance, WorkflowInstance
from sopflow.services import sop_catalog

# same instant the conftest ``engine`` fixture pins its clock to
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _naive(dt):
    # SQLite hands back naive datetimes for timezone-aware columns
    return dt.replace(tzinfo=None) if dt is not None else None


def _task_by_title(workflow, title):
    return next(t for t in workflow.tasks if t.task_template.title == title)


def _finish(engine, workflow_id, task_id, final=TaskStatus.COMPLETED):
    engine.transition_task(workflow_id, task_id, TaskStatus.IN_PROGRESS)
    return engine.transition_task(workflow_id, task_id, final)


def _finish_all(engine, workflow_id):
    """Drive every task to COMPLETED in dependency order."""
    while True:
        workflow = engine.get_workflow(workflow_id)
        ready = [t for t in workflow.tasks if t.status == TaskStatus.PENDING]
        if not ready:
            return workflow
        for task in ready:
            _finish(engine, workflow_id, task.id)


@pytest.fixture()
def scenario_definition(monkeypatch):
    """MAINTENANCE replaced by three tasks: owner-approval, website, dependent."""
    all_types = ["TRADITIONAL", "RANK_RENT", "GMB_ONLY"]
    definition = {
        "type": "MAINTENANCE",
        "name": "Scenario Maintenance",
        "description": "",
        "applicable_business_types": all_types,
        "tasks": [
            {"title": "T1", "category": "REVIEWS", "requires_owner_approval": True,
             "applicable_business_types": all_types, "order": 1, "depends_on": []},
            {"title": "T2", "category": "WEBSITE",
             "applicable_business_types": all_types, "order": 2, "depends_on": []},
            {"title": "T3", "category": "TRACKING",
             "applicable_business_types": all_types, "order": 3, "depends_on": [2]},
        ],
    }
    monkeypatch.setitem(sop_catalog.SOP_DEFINITIONS, SOPType.MAINTENANCE, definition)
    return definition


# ═════════════════════════════════════════════════════════════════════════════
# 1. Creation
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateWorkflow:

    def test_new_location_for_traditional(self, engine, location):
        wf = engine.create_workflow("new-location", location)
        assert wf.status == WorkflowStatus.IN_PROGRESS
        assert wf.priority == Priority.MEDIUM
        assert wf.total_tasks == 12
        assert wf.progress == 0
        assert _naive(wf.started_at) == _naive(FIXED_NOW)
        assert _naive(wf.due_date) == _naive(FIXED_NOW + timedelta(days=7))

        statuses = [t.status for t in wf.tasks]
        assert statuses[0] == TaskStatus.PENDING
        assert all(s == TaskStatus.BLOCKED for s in statuses[1:])

    def test_task_due_dates_follow_position(self, engine, location):
        wf = engine.create_workflow("suspension", location)
        offsets = [(_naive(t.due_date) - _naive(FIXED_NOW)).days for t in wf.tasks]
        assert offsets == [1, 2, 3, 3, 3, 3, 3, 3]
        assert _naive(wf.due_date) == _naive(FIXED_NOW + timedelta(days=3))

    def test_task_set_is_filtered_for_business_type(self, engine, gmb_location):
        wf = engine.create_workflow("rebrand", gmb_location)
        orders = [t.task_template.order for t in wf.tasks]
        assert orders == [1, 2, 3, 4, 5, 8, 9, 10]

    def test_priority_argument(self, engine, location):
        wf = engine.create_workflow("maintenance", location, priority="high")
        assert wf.priority == Priority.HIGH

    def test_default_priority_configurable(self, location):
        from sopflow.services.workflow_engine import WorkflowEngine
        from sopflow.services.workflow_store import WorkflowStore

        engine = WorkflowEngine(WorkflowStore(db.session), default_priority="LOW")
        assert engine.create_workflow("maintenance", location).priority == Priority.LOW

    def test_invalid_priority(self, engine, location):
        with pytest.raises(ValidationError, match="Invalid priority"):
            engine.create_workflow("maintenance", location, priority="URGENT")
        assert db.session.query(WorkflowInstance).count() == 0

    def test_unknown_template(self, engine, location):
        with pytest.raises(TemplateNotFoundError):
            engine.create_workflow("spring-cleaning", location)

    def test_unknown_location(self, engine):
        with pytest.raises(NotFoundError) as exc:
            engine.create_workflow("maintenance", 9999)
        assert exc.value.resource == "Location"
        assert db.session.query(SOPTemplate).count() == 0

    def test_no_applicable_tasks_creates_nothing(self, engine, rank_rent_location):
        with pytest.raises(NoApplicableTasksError):
            engine.create_workflow("rebrand", rank_rent_location)
        assert db.session.query(WorkflowInstance).count() == 0
        assert db.session.query(TaskInstance).count() == 0

    def test_template_shared_across_workflows(self, engine, location, gmb_location):
        first = engine.create_workflow("maintenance", location)
        second = engine.create_workflow("maintenance", gmb_location)
        assert first.sop_template_id == second.sop_template_id
        assert db.session.query(SOPTemplate).count() == 1


# ═════════════════════════════════════════════════════════════════════════════
# 2. End-to-end scenario
# ═════════════════════════════════════════════════════════════════════════════


class TestMaintenanceRankRentScenario:

    def test_full_run(self, engine, rank_rent_location, scenario_definition):
        wf = engine.create_workflow("maintenance", rank_rent_location)
        wf_id = wf.id

        titles = [t.task_template.title for t in wf.tasks]
        assert titles == ["T2", "T3"]
        t2 = _task_by_title(wf, "T2")
        t3 = _task_by_title(wf, "T3")
        assert t2.status == TaskStatus.PENDING
        assert t3.status == TaskStatus.BLOCKED
        assert wf.status == WorkflowStatus.IN_PROGRESS
        assert wf.progress == 0

        with pytest.raises(IncompleteTasksRemainError) as exc:
            engine.transition_workflow(wf_id, action="complete")
        assert exc.value.remaining == 2

        result = _finish(engine, wf_id, t2.id)
        assert result["unlocked_task_ids"] == [t3.id]
        wf = engine.get_workflow(wf_id)
        assert _task_by_title(wf, "T3").status == TaskStatus.PENDING
        assert wf.progress == 50

        _finish(engine, wf_id, t3.id)
        result = engine.transition_workflow(wf_id, action="complete")
        assert result["workflow"].status == WorkflowStatus.COMPLETED
        assert _naive(result["workflow"].completed_at) == _naive(FIXED_NOW)
        assert result["workflow"].progress == 100
        assert result["message"] == "Workflow complete successfully"


# ═════════════════════════════════════════════════════════════════════════════
# 3. Task transitions
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionTask:

    def test_start_then_complete_sets_timestamps(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        task = wf.tasks[0]
        result = engine.transition_task(wf.id, task.id, "IN_PROGRESS", assigned_to="u-1")
        assert result["task"].status == TaskStatus.IN_PROGRESS
        assert result["task"].assigned_to == "u-1"
        assert _naive(result["task"].started_at) == _naive(FIXED_NOW)

        result = engine.transition_task(wf.id, task.id, "COMPLETED")
        assert _naive(result["task"].completed_at) == _naive(FIXED_NOW)
        assert result["workflow"].completed_tasks == 1

    def test_skipped_dependency_unlocks(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        review_velocity = _task_by_title(wf, "Check Review Velocity")
        respond = _task_by_title(wf, "Respond to New Reviews")
        assert respond.status == TaskStatus.BLOCKED

        result = _finish(engine, wf.id, review_velocity.id, TaskStatus.SKIPPED)
        assert respond.id in result["unlocked_task_ids"]

    def test_report_needs_both_dependencies(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        velocity = _task_by_title(wf, "Check Review Velocity")
        competitors = _task_by_title(wf, "Check Competitor Rankings")
        report = _task_by_title(wf, "Generate Monthly Report")

        result = _finish(engine, wf.id, velocity.id)
        assert report.id not in result["unlocked_task_ids"]
        result = _finish(engine, wf.id, competitors.id)
        assert result["unlocked_task_ids"] == [report.id]

    def test_blocked_task_can_be_started_by_assignee(self, engine, location):
        wf = engine.create_workflow("new-location", location)
        blocked = wf.tasks[1]
        result = engine.transition_task(wf.id, blocked.id, TaskStatus.IN_PROGRESS)
        assert result["task"].status == TaskStatus.IN_PROGRESS

    def test_assignee_cannot_unblock(self, engine, location):
        wf = engine.create_workflow("new-location", location)
        with pytest.raises(InvalidStatusTransitionError):
            engine.transition_task(wf.id, wf.tasks[1].id, TaskStatus.PENDING)

    def test_task_from_other_workflow(self, engine, location, gmb_location):
        first = engine.create_workflow("maintenance", location)
        second = engine.create_workflow("maintenance", gmb_location)
        with pytest.raises(NotFoundError) as exc:
            engine.transition_task(first.id, second.tasks[0].id, TaskStatus.IN_PROGRESS)
        assert exc.value.resource == "TaskInstance"

    def test_invalid_task_status(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        with pytest.raises(ValidationError):
            engine.transition_task(wf.id, wf.tasks[0].id, "FINISHED")

    def test_failed_transition_rolls_back(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        task_id = wf.tasks[0].id
        with pytest.raises(InvalidStatusTransitionError):
            engine.transition_task(wf.id, task_id, TaskStatus.COMPLETED)
        assert db.session.get(TaskInstance, task_id).status == TaskStatus.PENDING


# ═════════════════════════════════════════════════════════════════════════════
# 4. Workflow transitions
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionWorkflow:

    def test_complete_after_all_tasks_done(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        _finish_all(engine, wf.id)
        result = engine.transition_workflow(wf.id, action="complete")
        assert result["workflow"].status == WorkflowStatus.COMPLETED

    def test_reopen_after_complete(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        _finish_all(engine, wf.id)
        engine.transition_workflow(wf.id, action="complete")
        result = engine.transition_workflow(wf.id, action="reopen")
        assert result["workflow"].status == WorkflowStatus.IN_PROGRESS
        assert result["workflow"].completed_at is None

    def test_block_and_start(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        engine.transition_workflow(wf.id, action="block")
        result = engine.transition_workflow(wf.id, action="start")
        assert result["workflow"].status == WorkflowStatus.IN_PROGRESS

    def test_illegal_action(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        with pytest.raises(IllegalTransitionError):
            engine.transition_workflow(wf.id, action="reopen")

    def test_action_wins_over_status(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        result = engine.transition_workflow(wf.id, action="cancel", status="BLOCKED")
        assert result["workflow"].status == WorkflowStatus.CANCELLED

    def test_direct_status_write(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        result = engine.transition_workflow(wf.id, status="BLOCKED")
        assert result["workflow"].status == WorkflowStatus.BLOCKED
        with pytest.raises(InvalidStatusTransitionError):
            engine.transition_workflow(wf.id, status="COMPLETED")

    def test_priority_only_update(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        result = engine.transition_workflow(wf.id, priority="CRITICAL")
        assert result["workflow"].priority == Priority.CRITICAL
        assert result["workflow"].status == WorkflowStatus.IN_PROGRESS
        assert result["message"] == "Workflow updated successfully"

    def test_empty_request(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        with pytest.raises(ValidationError) as exc:
            engine.transition_workflow(wf.id)
        assert exc.value.code == "ERR_VALIDATION_REQUIRED"

    def test_unknown_workflow(self, engine):
        with pytest.raises(NotFoundError):
            engine.transition_workflow(4242, action="start")


# ═════════════════════════════════════════════════════════════════════════════
# 5. Queries / maintenance
# ═════════════════════════════════════════════════════════════════════════════


class TestQueries:

    def test_list_filters(self, engine, location, gmb_location):
        a = engine.create_workflow("maintenance", location)
        b = engine.create_workflow("new-location", gmb_location)
        engine.transition_workflow(b.id, action="cancel")

        assert {w.id for w in engine.list_workflows().all()} == {a.id, b.id}
        assert {w.id for w in engine.list_workflows(status="all").all()} == {a.id, b.id}
        assert [w.id for w in engine.list_workflows(status="cancelled").all()] == [b.id]
        assert [w.id for w in engine.list_workflows(location_id=location).all()] == [a.id]

    def test_list_newest_first(self, location):
        from sopflow.services.workflow_engine import WorkflowEngine
        from sopflow.services.workflow_store import WorkflowStore

        store = WorkflowStore(db.session)
        older = WorkflowEngine(store, clock=lambda: FIXED_NOW).create_workflow(
            "maintenance", location,
        )
        newer = WorkflowEngine(
            store, clock=lambda: FIXED_NOW + timedelta(hours=1),
        ).create_workflow("maintenance", location)
        assert [w.id for w in store.list_workflows().all()] == [newer.id, older.id]

    def test_list_invalid_status(self, engine):
        with pytest.raises(ValidationError):
            engine.list_workflows(status="ARCHIVED")

    def test_get_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_workflow(1)

    def test_delete_removes_tasks(self, engine, location):
        wf = engine.create_workflow("maintenance", location)
        wf_id = wf.id
        engine.delete_workflow(wf_id)
        assert db.session.get(WorkflowInstance, wf_id) is None
        assert db.session.query(TaskInstance).count() == 0
        with pytest.raises(NotFoundError):
            engine.delete_workflow(wf_id)

    def test_location_account_view(self, location):
        from sopflow.services.workflow_store import WorkflowStore

        account = WorkflowStore(db.session).load_location_with_account(location)
        assert account.location_name == "Traditional Location"
        assert account.business_type == BusinessType.TRADITIONAL
        assert WorkflowStore(db.session).load_location_with_account(777) is None
