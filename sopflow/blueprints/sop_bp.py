"""
SOP catalog blueprint.

Endpoints:
    GET /api/v1/sops                 built-in SOPs merged with persisted state
    GET /api/v1/sops/<key>           one template (created on first request) with tasks
"""

from flask import Blueprint, jsonify

from sopflow.blueprints import register_domain_error_handlers
from sopflow.models import db
from sopflow.services.sop_catalog import list_templates, resolve_template
from sopflow.services.workflow_store import WorkflowStore

sop_bp = Blueprint("sop_bp", __name__, url_prefix="/api/v1")
register_domain_error_handlers(sop_bp)


@sop_bp.route("/sops", methods=["GET"])
def list_sops():
    entries = list_templates(WorkflowStore(db.session))
    return jsonify({"items": entries, "total": len(entries)})


@sop_bp.route("/sops/<template_key>", methods=["GET"])
def get_sop(template_key):
    template = resolve_template(WorkflowStore(db.session), template_key)
    return jsonify(template.to_dict(include_tasks=True))
