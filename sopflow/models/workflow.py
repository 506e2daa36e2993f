"""
SOPFlow
Workflow execution models.

Models:
    - WorkflowInstance:  one tracked run of an SOPTemplate against a Location
    - TaskInstance:      one tracked step of a workflow, 1:1 with a filtered TaskTemplate

Architecture:
    Location ──1:N──▶ WorkflowInstance ──1:N──▶ TaskInstance ──N:1──▶ TaskTemplate
    SOPTemplate ──1:N──▶ WorkflowInstance

Lifecycle states:
    WorkflowInstance:  not_started → in_progress → completed
                       in_progress ⇄ blocked  |  * → cancelled → in_progress
                       completed → in_progress (reopen)
    TaskInstance:      pending | blocked → in_progress → completed | skipped
                       blocked → pending (system, on dependency satisfaction)
"""

from datetime import datetime, timezone

from sopflow.models import db
from sopflow.models.enums import Priority, TaskStatus, WorkflowStatus, enum_type


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

WORKFLOW_TRANSITIONS = {
    WorkflowStatus.NOT_STARTED: [WorkflowStatus.IN_PROGRESS, WorkflowStatus.CANCELLED],
    WorkflowStatus.IN_PROGRESS: [
        WorkflowStatus.COMPLETED, WorkflowStatus.BLOCKED, WorkflowStatus.CANCELLED,
    ],
    WorkflowStatus.BLOCKED:     [WorkflowStatus.IN_PROGRESS, WorkflowStatus.CANCELLED],
    WorkflowStatus.COMPLETED:   [WorkflowStatus.IN_PROGRESS],   # reopen
    WorkflowStatus.CANCELLED:   [WorkflowStatus.IN_PROGRESS],   # restart
}

# Named actions: allowed source states → target state
WORKFLOW_ACTIONS = {
    "start": {
        "from": {WorkflowStatus.NOT_STARTED, WorkflowStatus.BLOCKED, WorkflowStatus.CANCELLED},
        "to": WorkflowStatus.IN_PROGRESS,
    },
    "complete": {
        "from": {WorkflowStatus.IN_PROGRESS},
        "to": WorkflowStatus.COMPLETED,
    },
    "reopen": {
        "from": {WorkflowStatus.COMPLETED},
        "to": WorkflowStatus.IN_PROGRESS,
    },
    "block": {
        "from": {WorkflowStatus.IN_PROGRESS},
        "to": WorkflowStatus.BLOCKED,
    },
    "cancel": {
        "from": set(WorkflowStatus),
        "to": WorkflowStatus.CANCELLED,
    },
}

TASK_TRANSITIONS = {
    TaskStatus.PENDING:     [TaskStatus.IN_PROGRESS],
    TaskStatus.BLOCKED:     [TaskStatus.PENDING, TaskStatus.IN_PROGRESS],
    TaskStatus.IN_PROGRESS: [TaskStatus.COMPLETED, TaskStatus.SKIPPED],
    TaskStatus.COMPLETED:   [],
    TaskStatus.SKIPPED:     [],
}

# Edges only the scheduler may take
SYSTEM_TASK_TRANSITIONS = frozenset({(TaskStatus.BLOCKED, TaskStatus.PENDING)})

DONE_TASK_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.SKIPPED})


def validate_workflow_transition(old_status, new_status):
    """Return True if a direct WorkflowInstance status write is in the table."""
    return new_status in WORKFLOW_TRANSITIONS.get(old_status, [])


def validate_task_transition(old_status, new_status, *, by_system=False):
    """Return True if TaskInstance status transition is valid for the caller."""
    if (old_status, new_status) in SYSTEM_TASK_TRANSITIONS and not by_system:
        return False
    return new_status in TASK_TRANSITIONS.get(old_status, [])


def compute_progress(completed, total):
    """Whole-percent progress; 0 for an empty workflow."""
    if total <= 0:
        return 0
    return round(completed / total * 100)


# ═════════════════════════════════════════════════════════════════════════════
# 1. WorkflowInstance
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowInstance(db.Model):
    """
    Concrete, tracked execution of an SOP for one location. Created already
    started (IN_PROGRESS); mutated only through the workflow engine.
    """

    __tablename__ = "workflow_instances"

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(
        db.Integer, db.ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    sop_template_id = db.Column(
        db.Integer, db.ForeignKey("sop_templates.id", ondelete="RESTRICT"),
        nullable=False, index=True,
    )
    status = db.Column(
        enum_type(WorkflowStatus, "ck_workflow_status"),
        nullable=False, default=WorkflowStatus.IN_PROGRESS, index=True,
    )
    priority = db.Column(
        enum_type(Priority, "ck_workflow_priority"),
        nullable=False, default=Priority.MEDIUM,
    )
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ────────────────────────────────────────────────────
    tasks = db.relationship(
        "TaskInstance",
        back_populates="workflow",
        order_by="TaskInstance.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    location = db.relationship("Location", lazy="joined")
    sop_template = db.relationship("SOPTemplate", lazy="joined")

    # ── Derived progress ─────────────────────────────────────────────────

    @property
    def total_tasks(self):
        return len(self.tasks)

    @property
    def completed_tasks(self):
        return sum(1 for t in self.tasks if t.status == TaskStatus.COMPLETED)

    @property
    def progress(self):
        return compute_progress(self.completed_tasks, self.total_tasks)

    def incomplete_tasks(self):
        """Tasks that still block completion (anything not COMPLETED/SKIPPED)."""
        return [t for t in self.tasks if t.status not in DONE_TASK_STATUSES]

    def to_dict(self, include_tasks=False):
        location = self.location
        client = location.client if location else None
        template = self.sop_template
        result = {
            "id": self.id,
            "name": template.name if template else None,
            "type": template.type.value if template else None,
            "sop_template_id": self.sop_template_id,
            "location_id": self.location_id,
            "location": location.name if location else None,
            "client": client.name if client else None,
            "business_type": client.business_type.value if client else None,
            "status": self.status.value,
            "priority": self.priority.value,
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "progress": self.progress,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }
        if include_tasks:
            result["tasks"] = [t.to_dict() for t in self.tasks]
        return result

    def __repr__(self):
        return f"<WorkflowInstance {self.id}: {self.status.value if self.status else '?'}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. TaskInstance
# ═════════════════════════════════════════════════════════════════════════════


class TaskInstance(db.Model):
    """
    Tracked unit of work derived from a TaskTemplate. Created only when its
    workflow is created; ``workflow_id`` never changes afterwards.
    """

    __tablename__ = "task_instances"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(
        db.Integer, db.ForeignKey("workflow_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    task_template_id = db.Column(
        db.Integer, db.ForeignKey("sop_task_templates.id", ondelete="RESTRICT"),
        nullable=False, index=True,
    )
    status = db.Column(
        enum_type(TaskStatus, "ck_task_instance_status"),
        nullable=False, default=TaskStatus.PENDING,
    )
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    assigned_to = db.Column(db.String(100), nullable=True, comment="External user reference")
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("workflow_id", "task_template_id", name="uq_task_instance_template"),
    )

    workflow = db.relationship("WorkflowInstance", back_populates="tasks")
    task_template = db.relationship("TaskTemplate", lazy="joined")

    def to_dict(self):
        tpl = self.task_template
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "task_template_id": self.task_template_id,
            "title": tpl.title if tpl else None,
            "category": tpl.category.value if tpl else None,
            "order": tpl.order if tpl else None,
            "is_required": tpl.is_required if tpl else None,
            "depends_on": tpl.dependency_orders if tpl else [],
            "status": self.status.value,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "assigned_to": self.assigned_to,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<TaskInstance {self.id}: wf={self.workflow_id} {self.status.value if self.status else '?'}>"
