"""
Staff blueprint.

Routes:
  POST   /api/v1/staff               – add a staff member
  GET    /api/v1/staff/leaderboard   – staff ranked by completion points (?limit=)
"""

from flask import Blueprint, jsonify, request

import grievance_desk.services.staff_service as staff_service
from grievance_desk.middleware.tenant_context import current_caller
from grievance_desk.schemas import CreateStaffRequest
from grievance_desk.utils.errors import register_error_handlers

staff_bp = Blueprint("staff", __name__, url_prefix="/api/v1/staff")
register_error_handlers(staff_bp)


@staff_bp.route("", methods=["POST"])
def create_staff():
    req = CreateStaffRequest.from_payload(request.get_json(silent=True))
    staff = staff_service.create_staff(current_caller(), req)
    return jsonify(staff.to_dict()), 201


@staff_bp.route("/leaderboard", methods=["GET"])
def leaderboard():
    limit = min(max(request.args.get("limit", 10, type=int), 1), 100)
    return jsonify(staff_service.leaderboard(current_caller(), limit=limit))
