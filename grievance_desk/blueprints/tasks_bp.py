"""
Grievance (task) blueprint.

Routes:
  GET    /api/v1/tasks                                  – list (?status=&category=&priority=&assigned_to=&include_steps=)
  POST   /api/v1/tasks                                  – file a grievance (workflow auto-attached)
  GET    /api/v1/tasks/<id>                             – task detail with steps and SLA
  DELETE /api/v1/tasks/<id>                             – soft delete
  GET    /api/v1/tasks/<id>/steps                       – ordered workflow steps
  POST   /api/v1/tasks/<id>/steps/<step_id>/complete    – complete one step
  POST   /api/v1/tasks/<id>/complete                    – complete a task without steps
  POST   /api/v1/tasks/<id>/recompute                   – re-derive progress
"""

import logging

from flask import Blueprint, jsonify, request

import grievance_desk.services.task_service as task_service
from grievance_desk.blueprints import paginated, pagination_args
from grievance_desk.middleware.tenant_context import current_caller
from grievance_desk.schemas import CompleteStepRequest, CreateTaskRequest
from grievance_desk.utils.errors import register_error_handlers
from grievance_desk.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")
register_error_handlers(tasks_bp)


@tasks_bp.route("", methods=["GET"])
def list_tasks():
    limit, offset = pagination_args()
    include_steps = parse_bool(request.args.get("include_steps"), False)
    tasks, total = task_service.list_tasks(
        current_caller(),
        status=request.args.get("status"),
        category=request.args.get("category"),
        priority=request.args.get("priority"),
        assigned_to=request.args.get("assigned_to", type=int),
        limit=limit,
        offset=offset,
    )
    items = [task_service.task_payload(t, include_steps=include_steps) for t in tasks]
    return jsonify(paginated(items, total, limit, offset))


@tasks_bp.route("", methods=["POST"])
def create_task():
    """File a grievance.

    Body: {
        title, category, sub_category?, description?, priority?, source?,
        filed_by?, assigned_to?, deadline?, tenant_id? (super_admin)
    }
    Returns: task with its attached steps (201).
    """
    req = CreateTaskRequest.from_payload(request.get_json(silent=True))
    task = task_service.create_task(current_caller(), req)
    return jsonify(task_service.task_payload(task, include_steps=True)), 201


@tasks_bp.route("/<int:task_id>", methods=["GET"])
def get_task(task_id):
    task = task_service.get_task(current_caller(), task_id)
    return jsonify(task_service.task_payload(task, include_steps=True))


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    task_service.delete_task(current_caller(), task_id)
    return jsonify({"deleted": True})


@tasks_bp.route("/<int:task_id>/steps", methods=["GET"])
def list_steps(task_id):
    steps = task_service.list_task_steps(current_caller(), task_id)
    return jsonify([s.to_dict() for s in steps])


@tasks_bp.route("/<int:task_id>/steps/<int:step_id>/complete", methods=["POST"])
def complete_step(task_id, step_id):
    """Complete one workflow step.

    Body: { notes? }
    Returns: { step, task, task_completed, points_awarded, side_effect_failures }
    """
    req = CompleteStepRequest.from_payload(request.get_json(silent=True))
    result = task_service.complete_step(current_caller(), task_id, step_id, req)
    return jsonify(result.to_dict(task_dict=task_service.task_payload(result.task)))


@tasks_bp.route("/<int:task_id>/complete", methods=["POST"])
def complete_task(task_id):
    result = task_service.complete_task(current_caller(), task_id)
    return jsonify(result.to_dict(task_dict=task_service.task_payload(result.task)))


@tasks_bp.route("/<int:task_id>/recompute", methods=["POST"])
def recompute(task_id):
    task = task_service.recompute_progress(current_caller(), task_id)
    return jsonify(task_service.task_payload(task))
