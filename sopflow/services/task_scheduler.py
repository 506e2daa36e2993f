"""
SOPFlow: task graph scheduler.

Two jobs:

    materialize()         initial status + due date for every filtered task,
                          and the workflow's own due date (creation time only)
    unlock_ready_tasks()  BLOCKED → PENDING once every dependency is done
                          (called after a task reaches COMPLETED / SKIPPED)

Dependency semantics:
    - A dependency is satisfied when its TaskInstance in the same workflow is
      COMPLETED or SKIPPED.
    - A dependency with no TaskInstance in the workflow (filtered out for this
      business type) counts as satisfied.
    - Initial gating is "has any dependency", regardless of applicability.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sopflow.models.enums import SOPType, TaskStatus
from sopflow.models.sop import TaskTemplate
from sopflow.models.workflow import (
    DONE_TASK_STATUSES,
    TaskInstance,
    WorkflowInstance,
    validate_task_transition,
)

logger = logging.getLogger(__name__)

SUSPENSION_HORIZON_DAYS = 3
DEFAULT_HORIZON_DAYS = 7


@dataclass(frozen=True)
class ScheduledTask:
    task_template: TaskTemplate
    status: TaskStatus
    due_date: datetime


@dataclass(frozen=True)
class ScheduledWorkflow:
    started_at: datetime
    due_date: datetime
    tasks: tuple[ScheduledTask, ...]


def horizon_days(sop_type: SOPType) -> int:
    """Days from start to workflow due date."""
    if sop_type == SOPType.SUSPENSION_RECOVERY:
        return SUSPENSION_HORIZON_DAYS
    return DEFAULT_HORIZON_DAYS


def initial_task_status(task_template: TaskTemplate) -> TaskStatus:
    return TaskStatus.BLOCKED if task_template.depends_on else TaskStatus.PENDING


def compute_due_dates(count: int, sop_type: SOPType, now: datetime) -> list[datetime]:
    """Per-position task due dates: ``now + min(index + 1, horizon)`` days."""
    days = horizon_days(sop_type)
    return [now + timedelta(days=min(index + 1, days)) for index in range(count)]


def materialize(
    filtered_tasks: list[TaskTemplate], sop_type: SOPType, now: datetime | None = None,
) -> ScheduledWorkflow:
    """Schedule ``filtered_tasks`` (already in template order)."""
    now = now or datetime.now(timezone.utc)
    due_dates = compute_due_dates(len(filtered_tasks), sop_type, now)
    tasks = tuple(
        ScheduledTask(
            task_template=tpl,
            status=initial_task_status(tpl),
            due_date=due,
        )
        for tpl, due in zip(filtered_tasks, due_dates)
    )
    return ScheduledWorkflow(
        started_at=now,
        due_date=now + timedelta(days=horizon_days(sop_type)),
        tasks=tasks,
    )


# ── Unlocking ────────────────────────────────────────────────────────────────


def dependencies_satisfied(
    task: TaskInstance, status_by_template: dict[int, TaskStatus],
) -> bool:
    """True if every dependency of ``task`` is done or absent from the workflow."""
    for dep in task.task_template.depends_on:
        status = status_by_template.get(dep.id)
        if status is not None and status not in DONE_TASK_STATUSES:
            return False
    return True


def unlock_ready_tasks(workflow: WorkflowInstance) -> list[TaskInstance]:
    """Move every BLOCKED task whose dependencies are satisfied to PENDING.

    Idempotent.  Returns the tasks that were unlocked by this call.
    """
    status_by_template = {t.task_template_id: t.status for t in workflow.tasks}
    unlocked = []
    for task in workflow.tasks:
        if task.status != TaskStatus.BLOCKED:
            continue
        if not dependencies_satisfied(task, status_by_template):
            continue
        if not validate_task_transition(task.status, TaskStatus.PENDING, by_system=True):
            continue
        task.status = TaskStatus.PENDING
        unlocked.append(task)

    if unlocked:
        logger.info(
            "Unlocked %d task(s): %s",
            len(unlocked), [t.id for t in unlocked],
            extra={"workflow_id": workflow.id},
        )
    return unlocked
