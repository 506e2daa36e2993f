"""
SOPFlow: SOP template catalog.

Resolves a caller-facing template key to a persisted SOPTemplate, creating
the template from its built-in definition the first time the type is asked
for.  After that first write, resolution is read-only.

    resolve_template(store, "maintenance")   → SOPTemplate (MAINTENANCE)
    resolve_template(store, "REBRAND")       → SOPTemplate (REBRAND)
    resolve_template(store, "nope")          → TemplateNotFoundError

Definitions are validated before anything is written: task orders must be
unique and ``depends_on`` must form a DAG over known orders of the same SOP.
"""

import logging

from sqlalchemy.exc import IntegrityError

from sopflow.core.exceptions import (
    TemplateDefinitionMissingError,
    TemplateNotFoundError,
    ValidationError,
)
from sopflow.models.enums import BusinessType, EvidenceType, SOPType, TaskCategory
from sopflow.models.sop import SOPTemplate, TaskTemplate, find_dependency_cycle
from sopflow.services.sop_definitions import BUILTIN_SOP_DEFINITIONS
from sopflow.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)

# Logical keys used by the UI / API → SOPType
TEMPLATE_KEYS = {
    "new-location": SOPType.NEW_LOCATION,
    "suspension": SOPType.SUSPENSION_RECOVERY,
    "rebrand": SOPType.REBRAND,
    "maintenance": SOPType.MAINTENANCE,
}

_KEY_BY_TYPE = {sop_type: key for key, sop_type in TEMPLATE_KEYS.items()}

SOP_DEFINITIONS = {
    SOPType(type_name): definition
    for type_name, definition in BUILTIN_SOP_DEFINITIONS.items()
}


# ── Key resolution ───────────────────────────────────────────────────────────


def parse_template_key(template_key: str | SOPType) -> SOPType:
    """Map a logical key (or enum name, any case) to an SOPType."""
    if isinstance(template_key, SOPType):
        return template_key
    if not isinstance(template_key, str) or not template_key.strip():
        raise TemplateNotFoundError(template_key)

    key = template_key.strip()
    if key.lower() in TEMPLATE_KEYS:
        return TEMPLATE_KEYS[key.lower()]
    try:
        return SOPType[key.upper()]
    except KeyError:
        raise TemplateNotFoundError(template_key) from None


def get_definition(sop_type: SOPType) -> dict:
    definition = SOP_DEFINITIONS.get(sop_type)
    if definition is None:
        raise TemplateDefinitionMissingError(sop_type)
    return definition


# ── Definition validation / building ─────────────────────────────────────────


def _coerce(enum_cls, value, field: str, task_order: int | None = None):
    try:
        return enum_cls(value)
    except ValueError:
        where = f"Task #{task_order}" if task_order is not None else "SOP"
        raise ValidationError(
            f"{where}: invalid {field} {value!r}",
            details={"order": task_order, field: value},
        ) from None


def validate_definition(definition: dict) -> dict[int, list[int]]:
    """Reject duplicate orders, unknown/self dependencies and cycles.

    Returns the ``{order: [dependency orders]}`` map on success.
    """
    tasks = definition.get("tasks") or []
    depends_on = {}
    for task in tasks:
        order = task["order"]
        if order in depends_on:
            raise ValidationError(
                f"Duplicate task order {order} in {definition.get('type')}",
                details={"order": order},
            )
        depends_on[order] = list(task.get("depends_on") or [])

    for order, preds in depends_on.items():
        for pred in preds:
            if pred == order:
                raise ValidationError(
                    f"Task #{order} cannot depend on itself",
                    details={"order": order},
                )
            if pred not in depends_on:
                raise ValidationError(
                    f"Task #{order} depends on unknown task #{pred}",
                    details={"order": order, "depends_on": pred},
                )

    cycle_edge = find_dependency_cycle(depends_on)
    if cycle_edge is not None:
        task_order, pred_order = cycle_edge
        raise ValidationError(
            f"Dependency #{pred_order} → #{task_order} would create a cycle",
            details={"order": task_order, "depends_on": pred_order},
        )
    return depends_on


def build_template(definition: dict) -> SOPTemplate:
    """Build a transient SOPTemplate (with tasks and dependency links)."""
    depends_on = validate_definition(definition)

    for bt in definition.get("applicable_business_types") or []:
        _coerce(BusinessType, bt, "business_type")

    by_order = {}
    for task in sorted(definition["tasks"], key=lambda t: t["order"]):
        order = task["order"]
        for bt in task.get("applicable_business_types") or []:
            _coerce(BusinessType, bt, "business_type", order)
        by_order[order] = TaskTemplate(
            title=task["title"],
            instructions=task.get("instructions", ""),
            category=_coerce(TaskCategory, task["category"], "category", order),
            evidence_type=_coerce(
                EvidenceType, task.get("evidence_type", "NONE"), "evidence_type", order,
            ),
            estimated_minutes=task.get("estimated_minutes"),
            is_required=task.get("is_required", True),
            requires_owner_approval=task.get("requires_owner_approval", False),
            applicable_business_types=list(task.get("applicable_business_types") or []),
            order=order,
        )

    for order, preds in depends_on.items():
        by_order[order].depends_on = [by_order[p] for p in preds]

    template = SOPTemplate(
        type=SOPType(definition["type"]),
        name=definition["name"],
        description=definition.get("description", ""),
        is_active=True,
        applicable_business_types=list(definition.get("applicable_business_types") or []),
    )
    template.task_templates = list(by_order.values())
    return template


# ── Resolution ───────────────────────────────────────────────────────────────


def resolve_template(store: WorkflowStore, template_key: str | SOPType) -> SOPTemplate:
    """Return the persisted template for ``template_key``, creating it on first use.

    The creation write commits in its own unit of work.  If another writer
    created the same type first, the unique constraint fires and the
    winner's row is returned instead.
    """
    sop_type = parse_template_key(template_key)
    template = store.load_template_by_type(sop_type)
    if template is not None:
        return template

    template = build_template(get_definition(sop_type))
    try:
        with store.unit_of_work():
            store.save_template(template)
    except IntegrityError:
        logger.warning(
            "SOP template %s created concurrently; reloading", sop_type.value,
            extra={"sop_type": sop_type.value},
        )
        existing = store.load_template_by_type(sop_type)
        if existing is None:
            raise
        return existing

    logger.info(
        "SOP template created: %s (%d tasks)",
        sop_type.value, len(template.task_templates),
        extra={"sop_type": sop_type.value},
    )
    return template


def list_templates(store: WorkflowStore) -> list[dict]:
    """Catalog entries in SOPType order: every built-in definition merged with persisted state."""
    persisted = {t.type: t for t in store.load_templates()}
    entries = []
    for sop_type in SOPType:
        definition = SOP_DEFINITIONS.get(sop_type)
        if definition is None:
            continue
        template = persisted.get(sop_type)
        if template is not None:
            entry = template.to_dict()
        else:
            entry = {
                "id": None,
                "type": sop_type.value,
                "name": definition["name"],
                "description": definition.get("description", ""),
                "is_active": True,
                "applicable_business_types": list(
                    definition.get("applicable_business_types") or []
                ),
                "task_count": len(definition.get("tasks") or []),
                "created_at": None,
            }
        entry["key"] = _KEY_BY_TYPE.get(sop_type)
        entry["persisted"] = template is not None
        entry["estimated_minutes"] = sum(
            t.get("estimated_minutes") or 0 for t in definition.get("tasks") or []
        )
        entries.append(entry)
    return entries
