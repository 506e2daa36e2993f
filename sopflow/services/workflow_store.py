"""
SOPFlow: persistence port.

``WorkflowStore`` wraps one SQLAlchemy session and is the only place the
engine touches the database.  Transaction policy:

    - Methods on the store call ``flush()`` only, never ``commit()``.
    - Callers group writes with ``with store.unit_of_work():`` which commits
      once on success, or rolls back and re-raises on any exception.

Inside a Flask request the session is ``db.session``; scripts and tests may
pass any session bound to the same metadata.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Query, Session

from sopflow.models.account import Client, Location
from sopflow.models.enums import BusinessType, SOPType, WorkflowStatus
from sopflow.models.sop import SOPTemplate
from sopflow.models.workflow import TaskInstance, WorkflowInstance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationAccount:
    """Read-only view of a location plus its owning client's classification."""

    location_id: int
    location_name: str
    client_id: int
    client_name: str
    business_type: BusinessType


class WorkflowStore:
    """SQLAlchemy-backed store for templates, locations and workflows."""

    def __init__(self, session: Session):
        self.session = session

    # ── Transactions ─────────────────────────────────────────────────────

    @contextmanager
    def unit_of_work(self) -> Iterator["WorkflowStore"]:
        """Commit once on success; roll back and re-raise on error."""
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ── SOP templates ────────────────────────────────────────────────────

    def load_template_by_type(self, sop_type: SOPType) -> SOPTemplate | None:
        return self.session.execute(
            select(SOPTemplate).where(SOPTemplate.type == sop_type)
        ).scalar_one_or_none()

    def load_templates(self) -> list[SOPTemplate]:
        return self.session.execute(
            select(SOPTemplate).order_by(SOPTemplate.id)
        ).scalars().all()

    def save_template(self, template: SOPTemplate) -> SOPTemplate:
        self.session.add(template)
        self.session.flush()
        return template

    # ── Accounts ─────────────────────────────────────────────────────────

    def load_location_with_account(self, location_id: int) -> LocationAccount | None:
        row = self.session.execute(
            select(Location, Client)
            .join(Client, Location.client_id == Client.id)
            .where(Location.id == location_id)
        ).first()
        if row is None:
            return None
        location, client = row
        return LocationAccount(
            location_id=location.id,
            location_name=location.name,
            client_id=client.id,
            client_name=client.name,
            business_type=client.business_type,
        )

    # ── Workflows ────────────────────────────────────────────────────────

    def create_workflow_with_tasks(
        self, workflow: WorkflowInstance, tasks: list[TaskInstance],
    ) -> WorkflowInstance:
        """Persist a workflow and its full task set in one flush."""
        workflow.tasks = list(tasks)
        self.session.add(workflow)
        self.session.flush()
        return workflow

    def load_workflow_with_tasks(
        self, workflow_id: int, for_update: bool = False,
    ) -> WorkflowInstance | None:
        """Load a workflow (tasks eager-loaded).

        With ``for_update`` the row is locked (``SELECT ... FOR UPDATE``) and
        any stale identity-map copy is refreshed, so concurrent writers to the
        same workflow are serialised by the database.
        """
        stmt = select(WorkflowInstance).where(WorkflowInstance.id == workflow_id)
        if for_update:
            stmt = stmt.with_for_update(of=WorkflowInstance).execution_options(
                populate_existing=True
            )
        return self.session.execute(stmt).unique().scalar_one_or_none()

    def update_workflow_and_tasks(
        self,
        workflow: WorkflowInstance,
        workflow_patch: dict | None = None,
        task_patches: dict[int, dict] | None = None,
    ) -> WorkflowInstance:
        """Apply attribute patches to a workflow and some of its tasks, then flush.

        ``task_patches`` maps a TaskInstance id to an attribute dict; ids that
        do not belong to ``workflow`` are ignored.
        """
        for attr, value in (workflow_patch or {}).items():
            setattr(workflow, attr, value)
        if task_patches:
            by_id = {t.id: t for t in workflow.tasks}
            for task_id, patch in task_patches.items():
                task = by_id.get(task_id)
                if task is None:
                    continue
                for attr, value in patch.items():
                    setattr(task, attr, value)
        self.session.flush()
        return workflow

    def list_workflows(
        self, status: WorkflowStatus | None = None, location_id: int | None = None,
    ) -> Query:
        """Return a query of workflows, newest ``started_at`` first.

        A Query (not a Select) so blueprints can hand it to ``paginate_query``.
        """
        query = self.session.query(WorkflowInstance)
        if status is not None:
            query = query.filter(WorkflowInstance.status == status)
        if location_id is not None:
            query = query.filter(WorkflowInstance.location_id == location_id)
        return query.order_by(
            WorkflowInstance.started_at.desc(), WorkflowInstance.id.desc()
        )

    def delete_workflow(self, workflow: WorkflowInstance) -> None:
        self.session.delete(workflow)
        self.session.flush()
        logger.info("Workflow deleted", extra={"workflow_id": workflow.id})
