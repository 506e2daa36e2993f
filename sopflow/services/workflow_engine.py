"""
SOPFlow: workflow engine (service layer).

Business logic for:
    - Workflow creation:   template resolve → applicability filter → schedule
    - Workflow lifecycle:  named actions (start/complete/reopen/block/cancel)
                           and validated direct status writes
    - Task lifecycle:      assignee-driven transitions + dependency unlock
    - Queries:             detail, filtered listing, deletion

Every mutating operation runs inside ``store.unit_of_work()`` and loads the
workflow ``FOR UPDATE`` first, so concurrent writers to one workflow are
serialised and each request commits exactly once.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.orm import Query

from sopflow.core.exceptions import (
    IllegalTransitionError,
    IncompleteTasksRemainError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from sopflow.models.enums import Priority, TaskStatus, WorkflowStatus
from sopflow.models.workflow import (
    DONE_TASK_STATUSES,
    WORKFLOW_ACTIONS,
    TaskInstance,
    WorkflowInstance,
    validate_task_transition,
    validate_workflow_transition,
)
from sopflow.services.applicability import filter_applicable
from sopflow.services.sop_catalog import parse_template_key, resolve_template
from sopflow.services.task_scheduler import materialize, unlock_ready_tasks
from sopflow.services.workflow_store import WorkflowStore
from sopflow.utils.errors import E

logger = logging.getLogger(__name__)

# TaskInstance.assigned_to column width
ASSIGNEE_MAX_LENGTH = 100


def coerce_enum(enum_cls, value, field: str):
    """Case-insensitive literal → enum member; None passes through."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={field: value, "allowed": [m.value for m in enum_cls]},
        ) from None


def coerce_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={field: value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: value}) from None


# ── Pure transition rules ────────────────────────────────────────────────────


def _completion_guard(workflow: WorkflowInstance) -> None:
    remaining = len(workflow.incomplete_tasks())
    if remaining:
        raise IncompleteTasksRemainError(remaining)


def apply_workflow_action(
    workflow: WorkflowInstance, action: str, now: datetime,
) -> tuple[dict, str]:
    """Validate a named action against ``workflow``; return ``(patch, message)``.

    Does not mutate the workflow.
    """
    name = action.strip().lower() if isinstance(action, str) else None
    rule = WORKFLOW_ACTIONS.get(name)
    if rule is None:
        raise ValidationError(
            f"Invalid action: {action!r}",
            details={"action": action, "allowed": sorted(WORKFLOW_ACTIONS)},
        )

    current = workflow.status
    if current not in rule["from"]:
        reason = None
        if name == "complete":
            reason = "Must be IN_PROGRESS."
        elif name == "reopen":
            reason = "Must be COMPLETED."
        raise IllegalTransitionError(name, current, reason)

    patch = {"status": rule["to"]}
    if name == "start" and workflow.started_at is None:
        patch["started_at"] = now
    elif name == "complete":
        _completion_guard(workflow)
        patch["completed_at"] = now
    elif name == "reopen":
        patch["completed_at"] = None
    return patch, f"Workflow {name} successfully"


def apply_status_update(
    workflow: WorkflowInstance, status: str | WorkflowStatus, now: datetime,
) -> tuple[dict, str]:
    """Validate a direct status write against the transition table."""
    requested = coerce_enum(WorkflowStatus, status, "status")
    current = workflow.status
    if not validate_workflow_transition(current, requested):
        raise InvalidStatusTransitionError(current, requested)

    patch = {"status": requested}
    if requested == WorkflowStatus.COMPLETED:
        _completion_guard(workflow)
        patch["completed_at"] = now
    elif requested == WorkflowStatus.IN_PROGRESS:
        if current == WorkflowStatus.COMPLETED:
            patch["completed_at"] = None
        if workflow.started_at is None:
            patch["started_at"] = now
    return patch, "Workflow updated successfully"


def task_patch_for(
    task: TaskInstance,
    requested: TaskStatus,
    now: datetime,
    assigned_to: str | None = None,
) -> dict:
    """Validate an assignee-driven task transition; return the attribute patch."""
    if assigned_to is not None and (
        not isinstance(assigned_to, str) or len(assigned_to) > ASSIGNEE_MAX_LENGTH
    ):
        raise ValidationError(
            f"assigned_to must be a string of at most {ASSIGNEE_MAX_LENGTH} characters",
            details={"assigned_to": assigned_to},
        )
    if not validate_task_transition(task.status, requested):
        raise InvalidStatusTransitionError(task.status, requested, entity="task")

    patch = {"status": requested}
    if requested == TaskStatus.IN_PROGRESS and task.started_at is None:
        patch["started_at"] = now
    if requested in DONE_TASK_STATUSES:
        patch["completed_at"] = now
    if assigned_to is not None:
        patch["assigned_to"] = assigned_to
    return patch


# ═════════════════════════════════════════════════════════════════════════════
# Engine
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowEngine:
    """Workflow/task orchestration over a ``WorkflowStore``.

    Args:
        store: persistence port (see ``workflow_store.WorkflowStore``).
        clock: zero-arg callable returning an aware ``datetime``; defaults to UTC now.
        default_priority: priority for workflows created without one.
    """

    def __init__(
        self,
        store: WorkflowStore,
        clock: Callable[[], datetime] | None = None,
        default_priority: Priority | str = Priority.MEDIUM,
    ):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.default_priority = coerce_enum(Priority, default_priority, "priority")

    def _now(self) -> datetime:
        return self._clock()

    def _load_for_update(self, workflow_id: int) -> WorkflowInstance:
        workflow = self.store.load_workflow_with_tasks(workflow_id, for_update=True)
        if workflow is None:
            raise NotFoundError(resource="WorkflowInstance", resource_id=workflow_id)
        return workflow

    # ── Creation ─────────────────────────────────────────────────────────

    def create_workflow(
        self, template_key, location_id, priority: str | None = None,
    ) -> WorkflowInstance:
        """Instantiate an SOP for a location; returns the new WorkflowInstance.

        Raises:
            TemplateNotFoundError, TemplateDefinitionMissingError,
            NotFoundError (location), NoApplicableTasksError, ValidationError.
        """
        sop_type = parse_template_key(template_key)
        location_id = coerce_id(location_id, "location_id")
        priority = coerce_enum(Priority, priority, "priority") or self.default_priority

        account = self.store.load_location_with_account(location_id)
        if account is None:
            raise NotFoundError(resource="Location", resource_id=location_id)

        template = resolve_template(self.store, sop_type)
        filtered = filter_applicable(template.task_templates, account.business_type)
        schedule = materialize(filtered, template.type, now=self._now())

        with self.store.unit_of_work():
            workflow = WorkflowInstance(
                location_id=location_id,
                sop_template_id=template.id,
                status=WorkflowStatus.IN_PROGRESS,
                priority=priority,
                started_at=schedule.started_at,
                due_date=schedule.due_date,
            )
            tasks = [
                TaskInstance(
                    task_template=st.task_template,
                    status=st.status,
                    due_date=st.due_date,
                )
                for st in schedule.tasks
            ]
            self.store.create_workflow_with_tasks(workflow, tasks)

        logger.info(
            "Workflow created: %s for location %s (%d tasks, %s)",
            template.type.value, location_id, len(tasks), account.business_type.value,
            extra={"workflow_id": workflow.id, "location_id": location_id},
        )
        return workflow

    # ── Queries ──────────────────────────────────────────────────────────

    def get_workflow(self, workflow_id: int) -> WorkflowInstance:
        workflow = self.store.load_workflow_with_tasks(workflow_id)
        if workflow is None:
            raise NotFoundError(resource="WorkflowInstance", resource_id=workflow_id)
        return workflow

    def list_workflows(self, status: str | None = None, location_id=None) -> Query:
        """Query of workflows, newest first. ``status="all"`` disables the filter."""
        if isinstance(status, str) and status.strip().lower() in ("", "all"):
            status = None
        status = coerce_enum(WorkflowStatus, status, "status")
        if isinstance(location_id, str) and not location_id.strip():
            location_id = None
        if location_id is not None:
            location_id = coerce_id(location_id, "location_id")
        return self.store.list_workflows(status=status, location_id=location_id)

    # ── Workflow lifecycle ───────────────────────────────────────────────

    def transition_workflow(
        self,
        workflow_id: int,
        *,
        action: str | None = None,
        status: str | None = None,
        priority: str | None = None,
    ) -> dict:
        """Apply an action or a direct status write, plus an optional priority.

        When both ``action`` and ``status`` are given the action wins.
        Returns ``{"workflow": WorkflowInstance, "message": str}``.
        """
        if not action and not status and not priority:
            raise ValidationError(
                "One of action, status or priority is required",
                code=E.VALIDATION_REQUIRED,
            )
        priority = coerce_enum(Priority, priority, "priority")

        with self.store.unit_of_work():
            workflow = self._load_for_update(workflow_id)
            now = self._now()
            patch, message = {}, "Workflow updated successfully"
            if action:
                patch, message = apply_workflow_action(workflow, action, now)
            elif status:
                patch, message = apply_status_update(workflow, status, now)
            if priority is not None:
                patch["priority"] = priority
            previous = workflow.status
            self.store.update_workflow_and_tasks(workflow, patch)

        logger.info(
            "Workflow %s: %s → %s",
            workflow_id, previous.value, workflow.status.value,
            extra={"workflow_id": workflow_id},
        )
        return {"workflow": workflow, "message": message}

    # ── Task lifecycle ───────────────────────────────────────────────────

    def transition_task(
        self, workflow_id: int, task_id: int, status, assigned_to: str | None = None,
    ) -> dict:
        """Move one task along its lifecycle and unlock dependents when it finishes.

        Returns ``{"workflow", "task", "unlocked_task_ids"}``.
        """
        requested = coerce_enum(TaskStatus, status, "status")
        if requested is None:
            raise ValidationError("status is required", code=E.VALIDATION_REQUIRED)
        task_id = coerce_id(task_id, "task_id")

        with self.store.unit_of_work():
            workflow = self._load_for_update(workflow_id)
            task = next((t for t in workflow.tasks if t.id == task_id), None)
            if task is None:
                raise NotFoundError(resource="TaskInstance", resource_id=task_id)

            previous = task.status
            patch = task_patch_for(task, requested, self._now(), assigned_to)
            self.store.update_workflow_and_tasks(workflow, task_patches={task.id: patch})

            unlocked = []
            if requested in DONE_TASK_STATUSES:
                unlocked = unlock_ready_tasks(workflow)
                if unlocked:
                    self.store.update_workflow_and_tasks(workflow)
            unlocked_ids = [t.id for t in unlocked]

        logger.info(
            "Task %s: %s → %s (unlocked %s)",
            task_id, previous.value, requested.value, unlocked_ids,
            extra={"workflow_id": workflow_id},
        )
        return {"workflow": workflow, "task": task, "unlocked_task_ids": unlocked_ids}

    # ── Maintenance ──────────────────────────────────────────────────────

    def delete_workflow(self, workflow_id: int) -> None:
        with self.store.unit_of_work():
            workflow = self._load_for_update(workflow_id)
            self.store.delete_workflow(workflow)
