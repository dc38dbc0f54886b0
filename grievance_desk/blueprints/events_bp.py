"""
Scheduled events blueprint.

Routes:
  GET    /api/v1/events                                   – list (?status=&type=)
  POST   /api/v1/events                                   – create event, open approval chain
  GET    /api/v1/events/<id>                              – event with approval records
  POST   /api/v1/events/<id>/approvals/<level>/decide     – approve / reject one level
"""

import logging

from flask import Blueprint, jsonify, request

import grievance_desk.services.event_service as event_service
from grievance_desk.blueprints import paginated, pagination_args
from grievance_desk.middleware.tenant_context import current_caller
from grievance_desk.schemas import CreateEventRequest, DecideApprovalRequest
from grievance_desk.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

events_bp = Blueprint("events", __name__, url_prefix="/api/v1/events")
register_error_handlers(events_bp)


@events_bp.route("", methods=["GET"])
def list_events():
    limit, offset = pagination_args()
    events, total = event_service.list_events(
        current_caller(),
        status=request.args.get("status"),
        event_type=request.args.get("type"),
        limit=limit,
        offset=offset,
    )
    return jsonify(paginated([e.to_dict() for e in events], total, limit, offset))


@events_bp.route("", methods=["POST"])
def create_event():
    """Body: { title, type, date, time, location, priority?, requires_approval?, ... }"""
    req = CreateEventRequest.from_payload(request.get_json(silent=True))
    result = event_service.create_event(current_caller(), req)
    return jsonify(result.to_dict()), 201


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id):
    event = event_service.get_event(current_caller(), event_id)
    return jsonify(event.to_dict())


@events_bp.route("/<int:event_id>/approvals/<int:level>/decide", methods=["POST"])
def decide(event_id, level):
    """Body: { decision: "approve"|"reject", comments? }"""
    req = DecideApprovalRequest.from_payload(request.get_json(silent=True))
    result = event_service.decide_approval(current_caller(), event_id, level, req)
    return jsonify(result.to_dict())
