"""
Workflow template blueprint.

Routes:
  GET    /api/v1/workflows                     – list templates (?category=slug)
  POST   /api/v1/workflows                     – create template with steps
  GET    /api/v1/workflows/<id>                – template detail with steps
  GET    /api/v1/workflows/resolve             – which template a new task would get
                                                 (?category=&sub_category=)
"""

import logging

from flask import Blueprint, jsonify, request

import grievance_desk.services.workflow_service as workflow_service
from grievance_desk.middleware.tenant_context import current_caller
from grievance_desk.schemas import CreateWorkflowTemplateRequest
from grievance_desk.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

workflows_bp = Blueprint("workflows", __name__, url_prefix="/api/v1/workflows")
register_error_handlers(workflows_bp)


@workflows_bp.route("", methods=["GET"])
def list_workflows():
    templates = workflow_service.list_workflow_templates(
        current_caller(), category=request.args.get("category"),
    )
    include_steps = request.args.get("include_steps", "true").lower() != "false"
    return jsonify([t.to_dict(include_steps=include_steps) for t in templates])


@workflows_bp.route("", methods=["POST"])
def create_workflow():
    """Create a workflow template.

    Body: {
        category, subcategory? ("all" when omitted), name?,
        sla_days?, sla_hours?, warning_threshold?,
        steps: [{title, description?, required?, duration_minutes?, sequence?}]
    }
    """
    req = CreateWorkflowTemplateRequest.from_payload(request.get_json(silent=True))
    template = workflow_service.create_workflow_template(current_caller(), req)
    return jsonify(template.to_dict()), 201


@workflows_bp.route("/resolve", methods=["GET"])
def resolve_workflow():
    preview = workflow_service.preview_workflow(
        current_caller(),
        request.args.get("category", ""),
        request.args.get("sub_category"),
        tenant_id=request.args.get("tenant_id", type=int),
    )
    return jsonify(preview)


@workflows_bp.route("/<int:template_id>", methods=["GET"])
def get_workflow(template_id):
    template = workflow_service.get_workflow_template(current_caller(), template_id)
    return jsonify(template.to_dict())
