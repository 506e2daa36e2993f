"""
Workflow blueprint.

Endpoints:
    POST   /api/v1/workflows                                   create from SOP template
    GET    /api/v1/workflows                                   list (?status, ?location_id, ?limit, ?offset)
    GET    /api/v1/workflows/<id>                              detail with tasks
    PATCH  /api/v1/workflows/<id>                              {action?, status?, priority?}
    DELETE /api/v1/workflows/<id>
    POST   /api/v1/workflows/<id>/tasks/<task_id>/transition   {status, assigned_to?}

Service layer owns all business logic and commits.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from sopflow.blueprints import paginate_query, register_domain_error_handlers
from sopflow.models import db
from sopflow.services.workflow_engine import WorkflowEngine
from sopflow.services.workflow_store import WorkflowStore
from sopflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow_bp", __name__, url_prefix="/api/v1")
register_domain_error_handlers(workflow_bp)


def _engine():
    return WorkflowEngine(
        WorkflowStore(db.session),
        default_priority=current_app.config.get("WORKFLOW_DEFAULT_PRIORITY", "MEDIUM"),
    )


# ── Workflows ────────────────────────────────────────────────────────────────


@workflow_bp.route("/workflows", methods=["POST"])
def create_workflow():
    data = request.get_json(silent=True) or {}
    template_key = data.get("sop_template_id")
    location_id = data.get("location_id")
    if not template_key or location_id in (None, ""):
        return api_error(
            E.VALIDATION_REQUIRED, "sop_template_id and location_id are required",
        )

    workflow = _engine().create_workflow(
        template_key, location_id, priority=data.get("priority"),
    )
    return jsonify({"success": True, "workflow": workflow.to_dict()}), 201


@workflow_bp.route("/workflows", methods=["GET"])
def list_workflows():
    query = _engine().list_workflows(
        status=request.args.get("status"),
        location_id=request.args.get("location_id"),
    )
    items, total = paginate_query(query)
    return jsonify({
        "items": [w.to_dict() for w in items],
        "total": total,
    })


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["GET"])
def get_workflow(workflow_id):
    workflow = _engine().get_workflow(workflow_id)
    return jsonify(workflow.to_dict(include_tasks=True))


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["PATCH"])
def update_workflow(workflow_id):
    data = request.get_json(silent=True) or {}
    result = _engine().transition_workflow(
        workflow_id,
        action=data.get("action"),
        status=data.get("status"),
        priority=data.get("priority"),
    )
    return jsonify({
        "workflow": result["workflow"].to_dict(include_tasks=True),
        "message": result["message"],
    })


@workflow_bp.route("/workflows/<int:workflow_id>", methods=["DELETE"])
def delete_workflow(workflow_id):
    _engine().delete_workflow(workflow_id)
    return jsonify({"message": "Workflow deleted successfully"})


# ── Tasks ────────────────────────────────────────────────────────────────────


@workflow_bp.route(
    "/workflows/<int:workflow_id>/tasks/<int:task_id>/transition", methods=["POST"],
)
def transition_task(workflow_id, task_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")

    result = _engine().transition_task(
        workflow_id, task_id, data["status"], assigned_to=data.get("assigned_to"),
    )
    return jsonify({
        "workflow": result["workflow"].to_dict(include_tasks=True),
        "task": result["task"].to_dict(),
        "unlocked_task_ids": result["unlocked_task_ids"],
    })
