"""
SOPFlow
SOP catalog domain models.

Models:
    - SOPTemplate:   one persisted copy per SOPType (created on first use)
    - TaskTemplate:  ordered step within an SOP, with applicability + dependencies

Architecture:
    SOPTemplate ──1:N──▶ TaskTemplate
    TaskTemplate ──N:M──▶ TaskTemplate  (via sop_task_dependencies, same SOP only)

Dependencies are declared by ``order`` number in the built-in definitions and
resolved to TaskTemplate rows when the template is first persisted.
"""

from datetime import datetime, timezone

from sopflow.models import db
from sopflow.models.enums import (
    BusinessType,
    EvidenceType,
    SOPType,
    TaskCategory,
    enum_type,
)


# ── Cycle Detection ──────────────────────────────────────────────────────────


def validate_no_cycle(depends_on, task_order, new_predecessor_order):
    """
    Check that adding new_predecessor_order → task_order does not create a cycle.

    ``depends_on`` maps a task order to the orders it depends on.  Uses an
    iterative DFS from new_predecessor_order, walking backwards through the
    existing predecessor chains.  Returns True if safe, False if cycle found.
    """
    if task_order == new_predecessor_order:
        return False

    visited = set()
    stack = [new_predecessor_order]

    while stack:
        current = stack.pop()
        if current == task_order:
            return False
        if current in visited:
            continue
        visited.add(current)
        stack.extend(depends_on.get(current, ()))

    return True


def find_dependency_cycle(depends_on):
    """Return the first (task, predecessor) edge that closes a cycle, or None."""
    accepted = {}
    for task_order in sorted(depends_on):
        for pred_order in depends_on[task_order]:
            if not validate_no_cycle(accepted, task_order, pred_order):
                return task_order, pred_order
            accepted.setdefault(task_order, []).append(pred_order)
    return None


sop_task_dependencies = db.Table(
    "sop_task_dependencies",
    db.Column(
        "predecessor_id", db.Integer,
        db.ForeignKey("sop_task_templates.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "successor_id", db.Integer,
        db.ForeignKey("sop_task_templates.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.CheckConstraint(
        "predecessor_id != successor_id",
        name="ck_sop_dep_no_self_loop",
    ),
)


# ═════════════════════════════════════════════════════════════════════════════
# 1. SOPTemplate
# ═════════════════════════════════════════════════════════════════════════════


class SOPTemplate(db.Model):
    """
    Persisted SOP definition. Exactly one row per SOPType; never regenerated
    once created.
    """

    __tablename__ = "sop_templates"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(
        enum_type(SOPType, "ck_sop_template_type"),
        nullable=False, unique=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    applicable_business_types = db.Column(
        db.JSON, nullable=False, default=list,
        comment="List of BusinessType values",
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    task_templates = db.relationship(
        "TaskTemplate",
        back_populates="sop_template",
        order_by="TaskTemplate.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def business_types(self):
        return frozenset(BusinessType(v) for v in self.applicable_business_types or ())

    def to_dict(self, include_tasks=False):
        result = {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "applicable_business_types": list(self.applicable_business_types or []),
            "task_count": len(self.task_templates),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_tasks:
            result["tasks"] = [t.to_dict() for t in self.task_templates]
        return result

    def __repr__(self):
        return f"<SOPTemplate {self.id}: {self.type.value if self.type else '?'}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. TaskTemplate
# ═════════════════════════════════════════════════════════════════════════════


class TaskTemplate(db.Model):
    """
    Individual step within an SOP. ``order`` drives default sequencing and
    due-date spacing; ``depends_on`` gates the instance until predecessors finish.
    """

    __tablename__ = "sop_task_templates"

    id = db.Column(db.Integer, primary_key=True)
    sop_template_id = db.Column(
        db.Integer, db.ForeignKey("sop_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    instructions = db.Column(db.Text, default="")
    category = db.Column(
        enum_type(TaskCategory, "ck_sop_task_category"), nullable=False,
    )
    evidence_type = db.Column(
        enum_type(EvidenceType, "ck_sop_task_evidence_type"),
        nullable=False, default=EvidenceType.NONE,
    )
    estimated_minutes = db.Column(db.Integer, nullable=True)
    is_required = db.Column(db.Boolean, nullable=False, default=True)
    requires_owner_approval = db.Column(db.Boolean, nullable=False, default=False)
    applicable_business_types = db.Column(
        db.JSON, nullable=False, default=list,
        comment="List of BusinessType values",
    )
    order = db.Column("order", db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("sop_template_id", "order", name="uq_sop_task_order"),
    )

    sop_template = db.relationship("SOPTemplate", back_populates="task_templates")
    depends_on = db.relationship(
        "TaskTemplate",
        secondary=sop_task_dependencies,
        primaryjoin=lambda: TaskTemplate.id == sop_task_dependencies.c.successor_id,
        secondaryjoin=lambda: TaskTemplate.id == sop_task_dependencies.c.predecessor_id,
        lazy="selectin",
    )

    @property
    def business_types(self):
        return frozenset(BusinessType(v) for v in self.applicable_business_types or ())

    @property
    def dependency_orders(self):
        return sorted(t.order for t in self.depends_on)

    def to_dict(self):
        return {
            "id": self.id,
            "sop_template_id": self.sop_template_id,
            "title": self.title,
            "instructions": self.instructions,
            "category": self.category.value,
            "evidence_type": self.evidence_type.value if self.evidence_type else None,
            "estimated_minutes": self.estimated_minutes,
            "is_required": self.is_required,
            "requires_owner_approval": self.requires_owner_approval,
            "applicable_business_types": list(self.applicable_business_types or []),
            "order": self.order,
            "depends_on": self.dependency_orders,
        }

    def __repr__(self):
        return f"<TaskTemplate {self.id}: #{self.order} {self.title[:40]}>"
